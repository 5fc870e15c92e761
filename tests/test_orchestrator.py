"""
Tests for the FinanceTracker facade and application wiring.
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from finvue.backup import InvalidBackupFormat
from finvue.config import get_settings, validate_all_settings
from finvue.models.audit import AuditEventType
from finvue.models.entities import (
    AccountCategory,
    Currency,
    EntityKind,
    TradePosition,
    UserSettings,
)
from finvue.models.results import TransactionQuery
from finvue.orchestrator import FinanceTracker, create_app_components
from finvue.services.storage import InMemoryEntityStore, SQLiteEntityStore, StorageUnavailable

from conftest import make_account, make_goal, make_loan, make_transaction


@pytest.fixture
async def tracker(audit_logger):
    tracker = FinanceTracker(InMemoryEntityStore(), audit_logger=audit_logger)
    await tracker.open()
    yield tracker
    await tracker.close()


@pytest.fixture
def clean_settings(monkeypatch, tmp_path):
    """Settings read from a clean environment pointing at tmp_path."""
    monkeypatch.setenv("FINVUE_STORE_DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


class TestLifecycle:
    """Tests for opening and closing the tracker."""

    async def test_first_run_creates_singletons(self, tracker):
        """Test that profile and settings exist after open()."""
        assert await tracker.profile() is not None
        assert await tracker.settings() == await tracker.store.get_settings()

    async def test_open_keeps_existing_singletons(self):
        """Test that reopening never overwrites user preferences."""
        store = InMemoryEntityStore()
        tracker = FinanceTracker(store)
        await tracker.open()
        await tracker.save_settings(UserSettings(dark_mode=True))
        await tracker.open()
        assert (await tracker.settings()).dark_mode is True

    async def test_open_repairs_orphans(self):
        """Test the startup repair pass."""
        store = InMemoryEntityStore()
        await store.init()
        await store.put(make_transaction("gone"))

        report = await FinanceTracker(store).open()

        assert report.transactions_deleted
        assert await store.get_all(EntityKind.TRANSACTION) == []

    async def test_open_without_repair(self):
        """Test that repair can be switched off."""
        store = InMemoryEntityStore()
        await store.init()
        await store.put(make_transaction("gone"))

        report = await FinanceTracker(store, repair_on_startup=False).open()

        assert report is None
        assert len(await store.get_all(EntityKind.TRANSACTION)) == 1


class TestEdits:
    """Tests for saves and deletes."""

    async def test_save_stamps_and_audits(self, tracker, audit_logger):
        """Test that saves refresh updated_at and are audited."""
        account = make_account()
        account.updated_at = datetime(2020, 1, 1, tzinfo=timezone.utc)

        await tracker.save_account(account)

        stored = await tracker.store.get(EntityKind.ACCOUNT, account.id)
        assert stored.updated_at > datetime(2020, 1, 1, tzinfo=timezone.utc)
        event = audit_logger.recent(1)[0]
        assert event.event_type == AuditEventType.RECORD_SAVED
        assert event.entity_id == account.id

    async def test_delete_account_cascades(self, tracker):
        """Test that the facade routes account deletes through the cascade."""
        a = await tracker.save_account(make_account(name="A"))
        b = await tracker.save_account(make_account(name="B"))
        await tracker.save_transaction(make_transaction(a.id))
        goal = await tracker.save_goal(make_goal([a.id, b.id]))

        report = await tracker.delete_account(a.id)

        assert len(report.transactions_deleted) == 1
        stored = await tracker.store.get(EntityKind.GOAL, goal.id)
        assert stored.linked_account_ids == [b.id]

    async def test_plain_deletes(self, tracker):
        """Test deleting transactions, goals and trades."""
        a = await tracker.save_account(make_account())
        t = await tracker.save_transaction(make_transaction(a.id))
        g = await tracker.save_goal(make_goal([a.id]))
        p = await tracker.save_trade(TradePosition(
            symbol="XEQT", average_cost=Decimal("30"), quantity=Decimal("1"), currency=Currency.CAD,
        ))

        await tracker.delete_transaction(t.id)
        await tracker.delete_goal(g.id)
        await tracker.delete_trade(p.id)

        for kind in (EntityKind.TRANSACTION, EntityKind.GOAL, EntityKind.TRADE):
            assert await tracker.store.get_all(kind) == []
        assert await tracker.store.get(EntityKind.ACCOUNT, a.id) is not None

    async def test_failed_save_is_audited(self, tracker, audit_logger):
        """Test that a storage failure is logged as a system error and re-raised."""
        await tracker.store.close()
        account = make_account()

        with pytest.raises(StorageUnavailable):
            await tracker.save_account(account)

        event = audit_logger.recent(1)[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.details["operation"] == "put"
        assert event.details["entity_id"] == account.id
        assert not any(
            e.event_type == AuditEventType.RECORD_SAVED and e.entity_id == account.id
            for e in audit_logger.recent()
        )

    async def test_failed_delete_is_audited(self, tracker, audit_logger):
        """Test that a failed delete is logged before it propagates."""
        await tracker.store.close()

        with pytest.raises(StorageUnavailable):
            await tracker.delete_goal("g1")

        event = audit_logger.recent(1)[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message.startswith("Cannot delete")


class TestDashboards:
    """Tests for derived views."""

    async def test_dashboard(self, tracker, rates):
        """Test the rollup over stored accounts."""
        await tracker.save_account(make_account(value="1000"))
        await tracker.save_account(make_loan())

        result = await tracker.dashboard(Currency.CAD, rates, date(2024, 2, 10))

        assert result.loans == Decimal("11500")
        assert result.net_worth == Decimal("-10500")

    async def test_dashboard_defaults_to_base_currency(self, tracker):
        """Test that no currency means the configured base currency."""
        result = await tracker.dashboard()
        assert result.currency == Currency.CAD

    async def test_accounts_project_loans(self, tracker):
        """Test that listed loans carry their projected balance."""
        await tracker.save_account(make_loan())
        accounts = await tracker.accounts(date(2024, 2, 10))
        assert accounts[0].nominal_value == Decimal("11500")

    async def test_goal_progress(self, tracker, rates):
        """Test progress lookup by goal id."""
        account = await tracker.save_account(make_account(value="1500"))
        goal = await tracker.save_goal(make_goal([account.id], target="1000"))

        progress = await tracker.goal_progress(goal.id, rates)

        assert progress.percentage == Decimal("100")
        assert await tracker.goal_progress("missing", rates) is None

    async def test_trades(self, tracker, rates):
        """Test the trade summary through the facade."""
        await tracker.save_trade(TradePosition(
            symbol="AAPL", average_cost=Decimal("100"), quantity=Decimal("2"), currency=Currency.USD,
        ))
        summary = await tracker.trades({"AAPL": "110"}, Currency.USD, rates)
        assert summary.profit_loss == Decimal("20")

    async def test_query_transactions(self, tracker):
        """Test transaction history through the facade."""
        a = await tracker.save_account(make_account())
        await tracker.save_transaction(make_transaction(a.id))
        result = await tracker.query_transactions(TransactionQuery(account_id=a.id))
        assert result.match_count == 1


class TestSnapshotsAndBackup:
    """Tests for snapshot capture, backup and reset."""

    async def test_capture_snapshot(self, tracker, rates):
        """Test that a snapshot records the current rollup."""
        await tracker.save_account(make_account(category=AccountCategory.INVESTMENTS, value="500"))
        now = datetime(2024, 4, 1, tzinfo=timezone.utc)

        snapshot = await tracker.capture_snapshot(Currency.CAD, rates, now)

        assert snapshot.investments_total == Decimal("500")
        assert snapshot.captured_at == now
        assert [s.id for s in await tracker.snapshots()] == [snapshot.id]

    async def test_export_import_round_trip(self, tracker):
        """Test that a backup restores the same records."""
        a = await tracker.save_account(make_account())
        await tracker.save_goal(make_goal([a.id]))
        payload = await tracker.export_backup()

        await tracker.reset()
        assert await tracker.store.get_all(EntityKind.ACCOUNT) == []

        result = await tracker.import_backup(payload)

        assert result.is_valid
        assert await tracker.store.get(EntityKind.ACCOUNT, a.id) == a

    async def test_import_rejected_keeps_data(self, tracker):
        """Test that a rejected import leaves the store untouched."""
        a = await tracker.save_account(make_account())
        with pytest.raises(InvalidBackupFormat):
            await tracker.import_backup({"portfolios": []})
        assert await tracker.store.get(EntityKind.ACCOUNT, a.id) == a

    async def test_import_repairs_orphans(self, tracker):
        """Test that imported dangling references are pruned."""
        payload = await tracker.export_backup()
        payload["goals"] = [make_goal(["gone"]).to_record()]

        result = await tracker.import_backup(payload)

        assert len(result.warnings) == 1
        goals = await tracker.goals()
        assert goals[0].linked_account_ids == []

    async def test_reset(self, tracker, audit_logger):
        """Test that reset wipes data but recreates singletons."""
        await tracker.save_account(make_account())
        await tracker.reset()

        assert await tracker.store.get_all(EntityKind.ACCOUNT) == []
        assert await tracker.profile() is not None
        assert any(e.event_type == AuditEventType.STORE_CLEARED for e in audit_logger.recent())


class TestAppComponents:
    """Tests for configuration-driven wiring."""

    def test_default_backend_is_sqlite(self, clean_settings, tmp_path):
        """Test that the default configuration builds a SQLite store."""
        tracker = create_app_components(clean_settings)
        assert isinstance(tracker.store, SQLiteEntityStore)
        assert tracker.store.path == tmp_path / "finvue.db"

    def test_memory_backend(self, monkeypatch, clean_settings):
        """Test switching the backend through the environment."""
        monkeypatch.setenv("FINVUE_STORE_BACKEND", "memory")
        tracker = create_app_components(clean_settings)
        assert isinstance(tracker.store, InMemoryEntityStore)

    def test_base_currency_from_env(self, monkeypatch, clean_settings):
        """Test the valuation base currency setting."""
        monkeypatch.setenv("FINVUE_VALUATION_BASE_CURRENCY", "USD")
        tracker = create_app_components(clean_settings)
        assert tracker.base_currency == Currency.USD

    def test_validate_all_settings(self, monkeypatch, clean_settings):
        """Test that a bad backend is reported, not raised."""
        monkeypatch.setenv("FINVUE_STORE_BACKEND", "postgres")
        results = validate_all_settings()
        assert results["store"] is False
        assert results["app"] is True

    async def test_sqlite_tracker_end_to_end(self, clean_settings):
        """Test a full open, save, reopen cycle on disk."""
        tracker = create_app_components(clean_settings)
        async with tracker:
            account = await tracker.save_account(make_account())

        async with create_app_components(clean_settings) as reopened:
            assert await reopened.store.get(EntityKind.ACCOUNT, account.id) == account
