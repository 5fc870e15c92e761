"""
Main Orchestrator for FinVue

This module ties together all the components and defines the
end-to-end flows the views rely on:
1. Edits (save / delete records, with cascades for accounts)
2. Dashboards (rollup, goal progress, trade P/L)
3. History (snapshots, transaction queries)
4. Backup (export, import, full reset)

DESIGN DECISION: The tracker enforces the boundaries:
- Account deletes always go through the integrity manager
- Loan balances are always projected, never read back from storage
- Every write is audited

Views never talk to the store directly; they go through here.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog

from finvue.audit import AuditLogger, create_correlation_id
from finvue.backup import BackupService
from finvue.config import Settings, get_settings
from finvue.integrity import ReferentialIntegrityManager
from finvue.models.entities import (
    Account,
    Currency,
    EntityKind,
    Goal,
    MutableRecord,
    Profile,
    Snapshot,
    TradePosition,
    Transaction,
    UserSettings,
)
from finvue.models.results import (
    GoalProgress,
    IntegrityReport,
    Rollup,
    TradeSummary,
    TransactionQuery,
    TransactionQueryResult,
    ValidationResult,
)
from finvue.queries import TransactionQueryExecutor
from finvue.services.storage import (
    EntityStoreInterface,
    InMemoryEntityStore,
    SQLiteEntityStore,
    StorageError,
)
from finvue.snapshots import SnapshotRecorder
from finvue.validation import BackupValidator
from finvue.valuation import (
    DEFAULT_RATES,
    goal_progress,
    resolve_account,
    rollup,
    trade_summary,
)
from finvue.valuation.engine import Moment, RateLookup
from finvue.valuation.rates import Number


logger = structlog.get_logger(__name__)


class FinanceTracker:
    """
    Facade over the store and the components built on top of it.

    Lifecycle:
    1. open()  -> store init, first-run singletons, optional repair
    2. use     -> save/delete, dashboards, snapshots, backups
    3. close() -> release the store
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        integrity: Optional[ReferentialIntegrityManager] = None,
        recorder: Optional[SnapshotRecorder] = None,
        backup: Optional[BackupService] = None,
        query_executor: Optional[TransactionQueryExecutor] = None,
        base_currency: Currency = Currency.CAD,
        repair_on_startup: bool = True,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._integrity = integrity or ReferentialIntegrityManager(store, audit_logger)
        self._recorder = recorder or SnapshotRecorder(store, audit_logger)
        self._backup = backup or BackupService(store, audit_logger=audit_logger)
        self._query_executor = query_executor or TransactionQueryExecutor(store, base_currency)
        self.base_currency = base_currency
        self.repair_on_startup = repair_on_startup

    @property
    def store(self) -> EntityStoreInterface:
        return self._store

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    @property
    def recorder(self) -> SnapshotRecorder:
        return self._recorder

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def open(self) -> Optional[IntegrityReport]:
        """
        Open the store and make it ready for use.

        Returns the repair report when a repair pass ran.
        """
        await self._store.init()
        await self._ensure_singletons()

        if not self.repair_on_startup:
            return None

        report = await self._integrity.repair()
        if report.changed:
            logger.info(
                "startup_repair",
                transactions_deleted=len(report.transactions_deleted),
                goals_updated=len(report.goals_updated),
            )
        return report

    async def close(self) -> None:
        await self._store.close()

    async def __aenter__(self) -> "FinanceTracker":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _ensure_singletons(self) -> None:
        """Create the profile and settings records on first run."""
        if await self._store.get_profile() is None:
            await self._store.save_profile(Profile())
        if await self._store.get_settings() is None:
            await self._store.save_settings(UserSettings())

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    async def _log_storage_error(
        self,
        error: StorageError,
        operation: str,
        kind: EntityKind,
        key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"operation": operation, "entity_type": kind.value, "entity_id": key},
                correlation_id=correlation_id,
            )

    async def _save(
        self,
        record: MutableRecord,
        correlation_id: Optional[UUID] = None,
    ) -> MutableRecord:
        record.touch()
        try:
            await self._store.put(record)
        except StorageError as e:
            await self._log_storage_error(e, "put", record.kind, record.key, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_record_saved(
                entity_type=record.kind.value,
                entity_id=record.key,
                correlation_id=correlation_id,
            )

        return record

    async def save_account(self, account: Account) -> Account:
        return await self._save(account)

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        return await self._save(transaction)

    async def save_goal(self, goal: Goal) -> Goal:
        return await self._save(goal)

    async def save_trade(self, position: TradePosition) -> TradePosition:
        return await self._save(position)

    async def save_profile(self, profile: Profile) -> Profile:
        return await self._save(profile)

    async def save_settings(self, settings: UserSettings) -> UserSettings:
        return await self._save(settings)

    async def delete_account(self, account_id: str) -> IntegrityReport:
        """Delete an account, its transactions and its goal links."""
        return await self._integrity.delete_account(account_id)

    async def _delete(self, kind: EntityKind, key: str) -> None:
        try:
            await self._store.delete(kind, key)
        except StorageError as e:
            await self._log_storage_error(e, "delete", kind, key)
            raise

        if self._audit_logger:
            await self._audit_logger.log_record_deleted(
                entity_type=kind.value,
                entity_id=key,
            )

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._delete(EntityKind.TRANSACTION, transaction_id)

    async def delete_goal(self, goal_id: str) -> None:
        await self._delete(EntityKind.GOAL, goal_id)

    async def delete_trade(self, position_id: str) -> None:
        await self._delete(EntityKind.TRADE, position_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def accounts(self, now: Optional[Moment] = None) -> list[Account]:
        """All accounts, with loan balances projected to `now`."""
        return [
            resolve_account(account, now)
            for account in await self._store.get_all(EntityKind.ACCOUNT)
        ]

    async def goals(self) -> list[Goal]:
        return await self._store.get_all(EntityKind.GOAL)

    async def profile(self) -> Optional[Profile]:
        return await self._store.get_profile()

    async def settings(self) -> Optional[UserSettings]:
        return await self._store.get_settings()

    async def dashboard(
        self,
        currency: Optional[Currency] = None,
        rates: RateLookup = DEFAULT_RATES,
        now: Optional[Moment] = None,
    ) -> Rollup:
        """Category totals, net worth and allocation in one currency."""
        accounts = await self._store.get_all(EntityKind.ACCOUNT)
        return rollup(accounts, currency or self.base_currency, rates, now)

    async def goal_progress(
        self,
        goal_id: str,
        rates: RateLookup = DEFAULT_RATES,
        now: Optional[Moment] = None,
    ) -> Optional[GoalProgress]:
        """Progress of one goal, or None if the goal does not exist."""
        goal = await self._store.get(EntityKind.GOAL, goal_id)
        if goal is None:
            return None
        accounts = await self._store.get_all(EntityKind.ACCOUNT)
        return goal_progress(goal, accounts, rates, now)

    async def trades(
        self,
        live_prices: Optional[Mapping[str, Number]] = None,
        currency: Optional[Currency] = None,
        rates: RateLookup = DEFAULT_RATES,
    ) -> TradeSummary:
        """P/L across every trade position."""
        positions = await self._store.get_all(EntityKind.TRADE)
        return trade_summary(
            positions,
            live_prices or {},
            currency or self.base_currency,
            rates,
        )

    async def query_transactions(
        self,
        query: Optional[TransactionQuery] = None,
        now: Optional[Union[date, datetime]] = None,
    ) -> TransactionQueryResult:
        return await self._query_executor.execute(query or TransactionQuery(), now)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def capture_snapshot(
        self,
        currency: Optional[Currency] = None,
        rates: RateLookup = DEFAULT_RATES,
        now: Optional[datetime] = None,
    ) -> Snapshot:
        """Record the current category totals for the trend view."""
        totals = await self.dashboard(currency, rates, now)
        return await self._recorder.capture(totals, captured_at=now)

    async def snapshots(self) -> list[Snapshot]:
        return await self._recorder.list()

    async def delete_snapshot(self, snapshot_id: str) -> None:
        await self._recorder.delete(snapshot_id)

    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------

    async def export_backup(self) -> dict[str, Any]:
        """The whole store as a JSON-compatible backup document."""
        document = await self._backup.export_document()
        return document.to_payload()

    async def export_backup_json(self) -> str:
        return await self._backup.export_json()

    async def import_backup(
        self,
        payload: Union[dict[str, Any], str, bytes],
    ) -> ValidationResult:
        """
        Replace the store with a backup.

        Raises:
            InvalidBackupFormat: If the payload is rejected; the store
                                 is left untouched in that case
        """
        correlation_id = create_correlation_id()
        result = await self._backup.import_payload(payload, correlation_id)
        await self._ensure_singletons()

        if result.warnings:
            await self._integrity.repair(correlation_id)

        return result

    async def reset(self) -> None:
        """Wipe everything and start over with fresh singletons."""
        await self._store.clear_all()

        if self._audit_logger:
            await self._audit_logger.log_store_cleared()

        await self._ensure_singletons()


def create_store(settings: Optional[Settings] = None) -> EntityStoreInterface:
    """Build the configured store engine."""
    settings = settings or get_settings()
    store_settings = settings.store

    if store_settings.backend == "memory":
        return InMemoryEntityStore()
    return SQLiteEntityStore(store_settings.database_path)


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[EntityStoreInterface] = None,
) -> FinanceTracker:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to build from (defaults to get_settings())
        store: Use this store instead of the configured one

    Returns:
        An unopened FinanceTracker; call open() before use
    """
    settings = settings or get_settings()
    app_settings = settings.app

    store = store or create_store(settings)
    audit_logger = AuditLogger(history_size=app_settings.audit_history_size)

    return FinanceTracker(
        store=store,
        audit_logger=audit_logger,
        integrity=ReferentialIntegrityManager(store, audit_logger),
        recorder=SnapshotRecorder(store, audit_logger),
        backup=BackupService(
            store,
            validator=BackupValidator(),
            audit_logger=audit_logger,
            version=app_settings.backup_version,
        ),
        query_executor=TransactionQueryExecutor(store, settings.valuation.base_currency),
        base_currency=settings.valuation.base_currency,
        repair_on_startup=app_settings.repair_on_startup,
    )
