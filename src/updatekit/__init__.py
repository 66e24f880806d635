"""Block maps for differential updates and concurrent range downloads."""

__version__ = "1.9.12"
