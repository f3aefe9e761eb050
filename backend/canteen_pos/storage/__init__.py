"""Storage abstraction layer for the canteen POS local cache."""

from .base import Storage, PLACED, COMPLETED, CANCELLED
from .inmemory import InMemoryStorage
from .sqlite import SQLiteStorage

__all__ = [
    "Storage",
    "InMemoryStorage",
    "SQLiteStorage",
    "PLACED",
    "COMPLETED",
    "CANCELLED",
]
