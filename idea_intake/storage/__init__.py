"""
Storage module.

Handles persistence and retrieval of ideas via SQLite or an in-memory backend.
"""

from idea_intake.storage.base import RecordNotFound, Storage, StorageError
from idea_intake.storage.memory import MockStorage
from idea_intake.storage.sqlite import SQLiteStorage

__all__ = [
    "Storage",
    "StorageError",
    "RecordNotFound",
    "SQLiteStorage",
    "MockStorage",
]
