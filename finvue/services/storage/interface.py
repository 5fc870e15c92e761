"""
Abstract Entity Store Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the SQLite file for another embedded engine later
2. Use in-memory storage for testing
3. Keep integrity rules and valuation decoupled from the engine

The interface is intentionally small - seven record operations plus an
explicit lifecycle. Every write is an idempotent upsert or delete keyed
by the record's id, so callers may retry a whole operation safely.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from finvue.models.entities import (
    PROFILE_KEY,
    SETTINGS_KEY,
    EntityKind,
    Profile,
    Record,
    Transaction,
    UserSettings,
)


class EntityStoreInterface(ABC):
    """
    Abstract interface for the durable entity store.

    Any storage engine must implement these methods. Before `init()`
    completes, read methods return empty results and write methods
    raise StorageUnavailable.
    """

    @abstractmethod
    async def init(self) -> None:
        """
        Open the underlying engine.

        Raises:
            StorageUnavailable: If the engine cannot be opened
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying engine. Safe to call twice."""
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether `init()` has completed and `close()` has not run."""
        pass

    @abstractmethod
    async def get_all(self, kind: EntityKind) -> list[Record]:
        """
        Return every record of a kind, in no particular order.

        Args:
            kind: Collection to read

        Returns:
            All records of that kind; empty before `init()`

        Raises:
            StorageUnavailable: If the read fails
        """
        pass

    @abstractmethod
    async def get(self, kind: EntityKind, key: str) -> Optional[Record]:
        """
        Return one record by key.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_account(self, account_id: str) -> list[Transaction]:
        """
        Return the transactions owned by an account.

        Served from a secondary index, never a full scan.

        Args:
            account_id: Owning account id

        Returns:
            Owned transactions, in no particular order
        """
        pass

    @abstractmethod
    async def put(self, record: Record) -> None:
        """
        Create or replace a record keyed by its id.

        The whole record is written or nothing is.

        Raises:
            StorageUnavailable: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, key: str) -> None:
        """
        Remove a single record. No-op if absent.

        Raises:
            StorageUnavailable: If the write fails
        """
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """
        Wipe every collection. Used only for full resets and restores.

        Raises:
            StorageUnavailable: If the write fails
        """
        pass

    @abstractmethod
    async def replace_all(self, records: Iterable[Record]) -> None:
        """
        Replace the contents of every collection with `records`.

        Atomic: on failure the previous contents are left untouched.
        Used by backup restores.

        Raises:
            StorageUnavailable: If the write fails
        """
        pass

    async def get_profile(self) -> Optional[Profile]:
        """The profile singleton, if one has been created."""
        return await self.get(EntityKind.PROFILE, PROFILE_KEY)

    async def save_profile(self, profile: Profile) -> None:
        await self.put(profile)

    async def get_settings(self) -> Optional[UserSettings]:
        """The settings singleton, if one has been created."""
        return await self.get(EntityKind.SETTINGS, SETTINGS_KEY)

    async def save_settings(self, settings: UserSettings) -> None:
        await self.put(settings)

    async def __aenter__(self) -> "EntityStoreInterface":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailable(StorageError):
    """The store could not be opened, or a read/write against it failed."""
    pass
