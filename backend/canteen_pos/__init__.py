"""Canteen point-of-sale local order cache and sync service."""

__version__ = "0.1.0"
