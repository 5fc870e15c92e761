"""
Storage Services Package

Provides the abstract entity store interface and its engines.
SQLite is the durable engine; the in-memory engine backs tests.
"""

from finvue.services.storage.interface import (
    EntityStoreInterface,
    StorageError,
    StorageUnavailable,
)
from finvue.services.storage.memory import InMemoryEntityStore
from finvue.services.storage.sqlite import SQLiteEntityStore

__all__ = [
    # Interface
    "EntityStoreInterface",
    # Exceptions
    "StorageError",
    "StorageUnavailable",
    # Engines
    "InMemoryEntityStore",
    "SQLiteEntityStore",
]
