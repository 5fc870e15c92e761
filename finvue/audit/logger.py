"""
Audit Logger

DESIGN DECISION: Every structural change the user did not spell out
(cascaded deletes, pruned goal links, repairs, imports) is logged.
This provides:
1. Traceability of destructive operations
2. Debugging capability
3. A visible trail for references that were silently repaired

The audit logger:
- Is async so it can sit inside store coroutines
- Never raises; a logging failure must not break a write
- Supports correlation IDs to trace related events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finvue.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. A bounded in-memory history (for inspection and tests)
    """

    def __init__(self, history_size: int = 500):
        """
        Initialize audit logger.

        Args:
            history_size: Number of events kept in memory.
                          0 disables the in-memory history.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("finvue.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True once the event has been recorded.
        """
        self._history.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except (TypeError, ValueError) as e:
            # Unserializable details; keep the event, report the failure
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

        return True

    def recent(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(self._history)
        events.reverse()
        return events[:limit]

    def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        """Events sharing a correlation ID, oldest first."""
        return [e for e in self._history if e.correlation_id == correlation_id]

    async def log_record_saved(
        self,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a plain record write."""
        await self.log(AuditEventBuilder.record_saved(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a plain record delete."""
        await self.log(AuditEventBuilder.record_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_account_deleted(
        self,
        account_id: str,
        transactions_deleted: int,
        goals_updated: int,
        correlation_id: UUID,
    ) -> None:
        """Log a completed account cascade."""
        await self.log(AuditEventBuilder.account_deleted(
            account_id=account_id,
            transactions_deleted=transactions_deleted,
            goals_updated=goals_updated,
            correlation_id=correlation_id,
        ))

    async def log_goal_link_pruned(
        self,
        goal_id: str,
        account_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log a weak reference removed from a goal."""
        await self.log(AuditEventBuilder.goal_link_pruned(
            goal_id=goal_id,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    async def log_orphans_repaired(
        self,
        transactions_deleted: list[str],
        goals_updated: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log a repair pass that changed something."""
        await self.log(AuditEventBuilder.orphans_repaired(
            transactions_deleted=transactions_deleted,
            goals_updated=goals_updated,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_captured(
        self,
        snapshot_id: str,
        currency: str,
        net_worth: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log snapshot capture."""
        await self.log(AuditEventBuilder.snapshot_captured(
            snapshot_id=snapshot_id,
            currency=currency,
            net_worth=net_worth,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_deleted(
        self,
        snapshot_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log snapshot deletion."""
        await self.log(AuditEventBuilder.snapshot_deleted(
            snapshot_id=snapshot_id,
            correlation_id=correlation_id,
        ))

    async def log_backup_exported(
        self,
        record_counts: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log backup export."""
        await self.log(AuditEventBuilder.backup_exported(
            record_counts=record_counts,
            correlation_id=correlation_id,
        ))

    async def log_backup_imported(
        self,
        record_counts: dict[str, int],
        warnings: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log backup import."""
        await self.log(AuditEventBuilder.backup_imported(
            record_counts=record_counts,
            warnings=warnings,
            correlation_id=correlation_id,
        ))

    async def log_backup_rejected(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected backup."""
        await self.log(AuditEventBuilder.backup_rejected(
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_store_cleared(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a full wipe."""
        await self.log(AuditEventBuilder.store_cleared(
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., deleting an account).
    Pass it through all subsequent operations.
    """
    return uuid4()
