"""Custom exceptions for Patissio."""


class PatissioError(Exception):
    """Base exception for all Patissio errors."""

    pass


class ConfigurationError(PatissioError):
    """Error in configuration or settings."""

    pass
