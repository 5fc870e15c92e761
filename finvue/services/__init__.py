"""Services package."""

from finvue.services.storage import (
    EntityStoreInterface,
    InMemoryEntityStore,
    SQLiteEntityStore,
    StorageError,
    StorageUnavailable,
)

__all__ = [
    "EntityStoreInterface",
    "InMemoryEntityStore",
    "SQLiteEntityStore",
    "StorageError",
    "StorageUnavailable",
]
