"""
Data Models Package

This package contains all Pydantic models used by FinVue.
Every record the store persists conforms to these schemas.
"""

from finvue.models.entities import (
    PROFILE_KEY,
    RECORD_TYPES,
    SETTINGS_KEY,
    Account,
    AccountCategory,
    Currency,
    EntityKind,
    Goal,
    LoanFields,
    MutableRecord,
    Profile,
    Record,
    Snapshot,
    TradePosition,
    Transaction,
    TransactionCategory,
    TransactionDirection,
    UserSettings,
    ensure_utc,
    new_id,
    record_from_payload,
    utcnow,
)
from finvue.models.results import (
    CategoryBreakdown,
    CategoryTotals,
    GoalProgress,
    IntegrityReport,
    MilestoneStatus,
    PositionValuation,
    Rollup,
    TimeRange,
    TradeSummary,
    TransactionQuery,
    TransactionQueryResult,
    ValidationIssue,
    ValidationResult,
)
from finvue.models.backup import REQUIRED_KEYS, BackupDocument
from finvue.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "PROFILE_KEY",
    "RECORD_TYPES",
    "SETTINGS_KEY",
    "Account",
    "AccountCategory",
    "Currency",
    "EntityKind",
    "Goal",
    "LoanFields",
    "MutableRecord",
    "Profile",
    "Record",
    "Snapshot",
    "TradePosition",
    "Transaction",
    "TransactionCategory",
    "TransactionDirection",
    "UserSettings",
    "ensure_utc",
    "new_id",
    "record_from_payload",
    "utcnow",
    # Result models
    "CategoryBreakdown",
    "CategoryTotals",
    "GoalProgress",
    "IntegrityReport",
    "MilestoneStatus",
    "PositionValuation",
    "Rollup",
    "TimeRange",
    "TradeSummary",
    "TransactionQuery",
    "TransactionQueryResult",
    "ValidationIssue",
    "ValidationResult",
    # Backup
    "REQUIRED_KEYS",
    "BackupDocument",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
