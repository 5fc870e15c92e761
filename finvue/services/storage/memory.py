"""
In-Memory Entity Store

Keeps every record as its serialized payload in a dict, plus the
account -> transaction index. Records are rebuilt on every read, so
callers never share mutable state with the store, exactly like the
file-backed engine.

Used by the test suite and for throwaway sessions.
"""

from typing import Any, Iterable, Optional

import structlog

from finvue.models.entities import (
    EntityKind,
    Record,
    Transaction,
    record_from_payload,
)
from finvue.services.storage.interface import (
    EntityStoreInterface,
    StorageUnavailable,
)


logger = structlog.get_logger(__name__)


class InMemoryEntityStore(EntityStoreInterface):
    """Dict-backed implementation of the entity store."""

    def __init__(self):
        self._open = False
        self._collections: dict[EntityKind, dict[str, dict[str, Any]]] = {
            kind: {} for kind in EntityKind
        }
        # account_id -> transaction keys
        self._by_account: dict[str, set[str]] = {}

    async def init(self) -> None:
        self._open = True

    async def close(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def _require_open(self, operation: str) -> None:
        if not self._open:
            raise StorageUnavailable(f"Cannot {operation}: store is not initialized")

    async def get_all(self, kind: EntityKind) -> list[Record]:
        if not self._open:
            logger.warning("store_read_before_init", kind=kind.value)
            return []
        return [
            record_from_payload(kind, payload)
            for payload in self._collections[kind].values()
        ]

    async def get(self, kind: EntityKind, key: str) -> Optional[Record]:
        if not self._open:
            logger.warning("store_read_before_init", kind=kind.value)
            return None
        payload = self._collections[kind].get(key)
        return record_from_payload(kind, payload) if payload is not None else None

    async def get_by_account(self, account_id: str) -> list[Transaction]:
        if not self._open:
            logger.warning("store_read_before_init", kind=EntityKind.TRANSACTION.value)
            return []
        transactions = self._collections[EntityKind.TRANSACTION]
        return [
            Transaction.from_record(transactions[key])
            for key in self._by_account.get(account_id, ())
        ]

    async def put(self, record: Record) -> None:
        self._require_open("write")
        kind = record.kind
        key = record.key
        payload = record.to_record()

        if kind == EntityKind.TRANSACTION:
            self._unindex(key)
            self._by_account.setdefault(payload["account_id"], set()).add(key)

        self._collections[kind][key] = payload

    async def delete(self, kind: EntityKind, key: str) -> None:
        self._require_open("delete")
        if kind == EntityKind.TRANSACTION:
            self._unindex(key)
        self._collections[kind].pop(key, None)

    async def clear_all(self) -> None:
        self._require_open("clear")
        for collection in self._collections.values():
            collection.clear()
        self._by_account.clear()

    async def replace_all(self, records: Iterable[Record]) -> None:
        self._require_open("replace")
        collections: dict[EntityKind, dict[str, dict[str, Any]]] = {
            kind: {} for kind in EntityKind
        }
        for record in records:
            collections[record.kind][record.key] = record.to_record()

        by_account: dict[str, set[str]] = {}
        for key, payload in collections[EntityKind.TRANSACTION].items():
            by_account.setdefault(payload["account_id"], set()).add(key)

        self._collections = collections
        self._by_account = by_account

    def _unindex(self, transaction_key: str) -> None:
        existing = self._collections[EntityKind.TRANSACTION].get(transaction_key)
        if existing is None:
            return
        keys = self._by_account.get(existing["account_id"])
        if keys is not None:
            keys.discard(transaction_key)
            if not keys:
                del self._by_account[existing["account_id"]]
