"""Business workflows and external provider clients."""
