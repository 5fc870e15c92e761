"""
Backup Document Model

The single JSON document used for backup and restore. Its top-level
collection keys match `EntityKind` values so the importer can route
records to the right collection without a lookup table.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from finvue.models.entities import (
    Account,
    EntityKind,
    Goal,
    Profile,
    Record,
    Snapshot,
    TradePosition,
    Transaction,
    UserSettings,
    utcnow,
)


REQUIRED_KEYS = tuple(kind.value for kind in EntityKind)


class BackupDocument(BaseModel):
    """Every collection of the store at one point in time."""

    version: str = "1.0"
    exported_at: datetime = Field(default_factory=utcnow)

    profile: Optional[Profile] = None
    settings: Optional[UserSettings] = None
    portfolios: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    trades: list[TradePosition] = Field(default_factory=list)
    snapshots: list[Snapshot] = Field(default_factory=list)

    def records(self) -> list[Record]:
        """All records in the document, singletons first."""
        result: list[Record] = []
        if self.profile is not None:
            result.append(self.profile)
        if self.settings is not None:
            result.append(self.settings)
        for kind in EntityKind:
            if not kind.is_singleton:
                result.extend(getattr(self, kind.value))
        return result

    def to_payload(self) -> dict[str, Any]:
        """
        JSON-compatible payload.

        Records go through `to_record()` so derived values (loan
        balances) never leak into the backup.
        """
        payload: dict[str, Any] = {
            "version": self.version,
            "exported_at": self.exported_at.isoformat(),
            "profile": self.profile.to_record() if self.profile else None,
            "settings": self.settings.to_record() if self.settings else None,
        }
        for kind in EntityKind:
            if not kind.is_singleton:
                payload[kind.value] = [r.to_record() for r in getattr(self, kind.value)]
        return payload
