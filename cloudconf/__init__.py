"""Parse, decode and validate cloud-config user-data."""

__version__ = "0.1.0"

__all__ = ["__version__"]