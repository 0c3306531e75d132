"""Configuration module for Patissio."""

from patissio.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
