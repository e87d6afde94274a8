"""
Storage module.

Handles reading interactions and content tags, and persisting interest maps,
via MongoDB or an in-memory backend.
"""

from src.storage.base import Storage
from src.storage.memory import InMemoryStorage
from src.storage.mongodb import MongoStorage

__all__ = [
    "Storage",
    "InMemoryStorage",
    "MongoStorage",
]
