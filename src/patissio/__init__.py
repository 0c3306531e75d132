"""Patissio: multi-tenant storefront and booking platform for pastry shops."""

__version__ = "0.1.0"
