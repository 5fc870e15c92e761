"""
Audit Models for FinVue

Every write that changes more than the record the caller handed in
(cascades, pruned links, repairs, imports) is logged as an audit event.
This provides:
1. Traceability of destructive operations
2. Debugging information when things go wrong
3. A record of silently repaired references

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finvue.models.entities import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Plain record writes
    RECORD_SAVED = "record_saved"
    RECORD_DELETED = "record_deleted"

    # Referential integrity
    ACCOUNT_DELETED = "account_deleted"
    GOAL_LINK_PRUNED = "goal_link_pruned"
    ORPHANS_REPAIRED = "orphans_repaired"

    # Snapshots
    SNAPSHOT_CAPTURED = "snapshot_captured"
    SNAPSHOT_DELETED = "snapshot_deleted"

    # Backup
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_REJECTED = "backup_rejected"

    # Store lifecycle
    STORE_CLEARED = "store_cleared"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Collection of the entity (e.g., 'portfolios', 'goals')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Key of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one cascade delete)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_deleted(account_id, 3, 1, correlation_id)
    """

    @staticmethod
    def record_saved(
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Saved {entity_type} record {entity_id}",
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Deleted {entity_type} record {entity_id}",
        )

    @staticmethod
    def account_deleted(
        account_id: str,
        transactions_deleted: int,
        goals_updated: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type="portfolios",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=(
                f"Account deleted with {transactions_deleted} transactions, "
                f"unlinked from {goals_updated} goals"
            ),
            details={
                "transactions_deleted": transactions_deleted,
                "goals_updated": goals_updated,
            },
        )

    @staticmethod
    def goal_link_pruned(
        goal_id: str,
        account_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_LINK_PRUNED,
            entity_type="goals",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Removed link to account {account_id}",
            details={
                "account_id": account_id,
            },
        )

    @staticmethod
    def orphans_repaired(
        transactions_deleted: list[str],
        goals_updated: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORPHANS_REPAIRED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=(
                f"Repaired {len(transactions_deleted)} orphaned transactions "
                f"and {len(goals_updated)} goals"
            ),
            details={
                "transactions_deleted": transactions_deleted,
                "goals_updated": goals_updated,
            },
        )

    @staticmethod
    def snapshot_captured(
        snapshot_id: str,
        currency: str,
        net_worth: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_CAPTURED,
            entity_type="snapshots",
            entity_id=snapshot_id,
            correlation_id=correlation_id,
            description=f"Snapshot captured: net worth {net_worth} {currency}",
            details={
                "currency": currency,
                "net_worth": net_worth,
            },
        )

    @staticmethod
    def snapshot_deleted(
        snapshot_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_DELETED,
            entity_type="snapshots",
            entity_id=snapshot_id,
            correlation_id=correlation_id,
            description="Snapshot deleted by user",
        )

    @staticmethod
    def backup_exported(
        record_counts: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            correlation_id=correlation_id,
            description=f"Backup exported with {sum(record_counts.values())} records",
            details={
                "record_counts": record_counts,
            },
        )

    @staticmethod
    def backup_imported(
        record_counts: dict[str, int],
        warnings: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            correlation_id=correlation_id,
            description=f"Backup imported with {sum(record_counts.values())} records",
            details={
                "record_counts": record_counts,
                "warnings": warnings,
            },
        )

    @staticmethod
    def backup_rejected(
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Backup rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def store_cleared(
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_CLEARED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="All collections wiped",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
