"""
SQLite Entity Store

DESIGN DECISION: A single SQLite file is used as the durable engine:
1. No server process, matches the single-user local model
2. Each put/delete is one statement plus commit, so a record is
   written completely or not at all; a restore replaces everything
   in one transaction
3. A real SQL index serves the account -> transaction lookup

Every collection shares one table. Records are stored as JSON
payloads; the `account_id` column is only filled for transactions
and exists purely to back the secondary index.
"""

import json
import sqlite3
from pathlib import Path
from typing import Iterable, Optional

import aiosqlite
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

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


SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    kind TEXT NOT NULL,
    key TEXT NOT NULL,
    account_id TEXT,
    payload TEXT NOT NULL,
    PRIMARY KEY (kind, key)
);

CREATE INDEX IF NOT EXISTS idx_records_account
    ON records (kind, account_id);
"""


class SQLiteEntityStore(EntityStoreInterface):
    """
    aiosqlite implementation of the entity store.

    Opening is retried with exponential backoff; any sqlite failure
    after that surfaces as StorageUnavailable.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._connection: Optional[aiosqlite.Connection] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    async def _connect(self) -> aiosqlite.Connection:
        """Open the database file and apply the schema."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            connection = await aiosqlite.connect(self.path)
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable(f"Failed to open store at {self.path}: {e}")

        try:
            await connection.execute("PRAGMA journal_mode=WAL")
            await connection.execute("PRAGMA synchronous=FULL")
            await connection.executescript(SCHEMA)
            await connection.commit()
        except sqlite3.Error as e:
            await connection.close()
            raise StorageUnavailable(f"Failed to initialize store at {self.path}: {e}")

        return connection

    async def init(self) -> None:
        if self._connection is None:
            self._connection = await self._connect()
            logger.debug("store_opened", path=str(self.path))

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.debug("store_closed", path=str(self.path))

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def _require_open(self, operation: str) -> aiosqlite.Connection:
        if self._connection is None:
            raise StorageUnavailable(f"Cannot {operation}: store is not initialized")
        return self._connection

    async def _fetch_payloads(self, sql: str, params: tuple) -> list[dict]:
        try:
            cursor = await self._connection.execute(sql, params)
            rows = await cursor.fetchall()
            await cursor.close()
            return [json.loads(row[0]) for row in rows]
        except (sqlite3.Error, ValueError) as e:
            raise StorageUnavailable(f"Failed to read records: {e}")

    async def get_all(self, kind: EntityKind) -> list[Record]:
        if self._connection is None:
            logger.warning("store_read_before_init", kind=kind.value)
            return []
        payloads = await self._fetch_payloads(
            "SELECT payload FROM records WHERE kind = ?",
            (kind.value,),
        )
        return self._decode(kind, payloads)

    async def get(self, kind: EntityKind, key: str) -> Optional[Record]:
        if self._connection is None:
            logger.warning("store_read_before_init", kind=kind.value)
            return None
        payloads = await self._fetch_payloads(
            "SELECT payload FROM records WHERE kind = ? AND key = ?",
            (kind.value, key),
        )
        records = self._decode(kind, payloads)
        return records[0] if records else None

    async def get_by_account(self, account_id: str) -> list[Transaction]:
        if self._connection is None:
            logger.warning("store_read_before_init", kind=EntityKind.TRANSACTION.value)
            return []
        payloads = await self._fetch_payloads(
            "SELECT payload FROM records WHERE kind = ? AND account_id = ?",
            (EntityKind.TRANSACTION.value, account_id),
        )
        return self._decode(EntityKind.TRANSACTION, payloads)

    async def put(self, record: Record) -> None:
        connection = self._require_open("write")
        try:
            await connection.execute(
                "INSERT OR REPLACE INTO records (kind, key, account_id, payload) "
                "VALUES (?, ?, ?, ?)",
                self._row(record),
            )
            await connection.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Failed to save {record.kind.value} {record.key}: {e}")

    async def delete(self, kind: EntityKind, key: str) -> None:
        connection = self._require_open("delete")
        try:
            await connection.execute(
                "DELETE FROM records WHERE kind = ? AND key = ?",
                (kind.value, key),
            )
            await connection.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Failed to delete {kind.value} {key}: {e}")

    async def clear_all(self) -> None:
        connection = self._require_open("clear")
        try:
            await connection.execute("DELETE FROM records")
            await connection.commit()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Failed to clear store: {e}")

    async def replace_all(self, records: Iterable[Record]) -> None:
        connection = self._require_open("replace")
        rows = [self._row(record) for record in records]
        try:
            await connection.execute("DELETE FROM records")
            await connection.executemany(
                "INSERT OR REPLACE INTO records (kind, key, account_id, payload) "
                "VALUES (?, ?, ?, ?)",
                rows,
            )
            await connection.commit()
        except sqlite3.Error as e:
            await connection.rollback()
            raise StorageUnavailable(f"Failed to replace store contents: {e}")
        logger.debug("store_replaced", records=len(rows))

    @staticmethod
    def _row(record: Record) -> tuple:
        payload = record.to_record()
        account_id = payload["account_id"] if record.kind == EntityKind.TRANSACTION else None
        return (record.kind.value, record.key, account_id, json.dumps(payload))

    @staticmethod
    def _decode(kind: EntityKind, payloads: list[dict]) -> list[Record]:
        try:
            return [record_from_payload(kind, payload) for payload in payloads]
        except ValueError as e:
            raise StorageUnavailable(f"Corrupt {kind.value} record in store: {e}")
