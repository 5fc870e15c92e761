"""
Snapshot Recorder

Captures the four category totals as an immutable Snapshot for the
historical trend view. The totals are computed elsewhere (the
valuation engine); the recorder only stamps and persists them.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from finvue.audit import AuditLogger
from finvue.models.entities import EntityKind, Snapshot, utcnow
from finvue.models.results import CategoryTotals
from finvue.services.storage import EntityStoreInterface


class SnapshotRecorder:
    """Creates, lists and deletes snapshots. Never edits one."""

    def __init__(
        self,
        store: EntityStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

    async def capture(
        self,
        totals: CategoryTotals,
        captured_at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Snapshot:
        """Persist a new snapshot of the given totals."""
        snapshot = Snapshot(
            captured_at=captured_at or utcnow(),
            currency=totals.currency,
            savings_total=totals.savings,
            investments_total=totals.investments,
            debt_total=totals.debts,
            loan_total=totals.loans,
        )
        await self._store.put(snapshot)

        if self._audit_logger:
            await self._audit_logger.log_snapshot_captured(
                snapshot_id=snapshot.id,
                currency=snapshot.currency.value,
                net_worth=str(snapshot.net_worth),
                correlation_id=correlation_id,
            )

        return snapshot

    async def list(self) -> list[Snapshot]:
        """All snapshots, oldest first."""
        snapshots = await self._store.get_all(EntityKind.SNAPSHOT)
        return sorted(snapshots, key=lambda s: s.captured_at)

    async def delete(
        self,
        snapshot_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Remove a snapshot at the user's request."""
        await self._store.delete(EntityKind.SNAPSHOT, snapshot_id)

        if self._audit_logger:
            await self._audit_logger.log_snapshot_deleted(
                snapshot_id=snapshot_id,
                correlation_id=correlation_id,
            )
