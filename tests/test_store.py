"""
Tests for the entity store engines.

Both engines must behave identically, so most tests run against each.
"""

import pytest
from decimal import Decimal

from finvue.models.entities import EntityKind, Profile, Snapshot, UserSettings
from finvue.services.storage import (
    InMemoryEntityStore,
    SQLiteEntityStore,
    StorageUnavailable,
)

from conftest import make_account, make_loan, make_transaction


@pytest.fixture(params=["memory", "sqlite"])
async def any_store(request, tmp_path):
    """An opened store of each engine."""
    if request.param == "memory":
        store = InMemoryEntityStore()
    else:
        store = SQLiteEntityStore(tmp_path / "store.db")
    await store.init()
    yield store
    await store.close()


class TestEntityStore:
    """Tests shared by every engine."""

    async def test_put_then_get(self, any_store):
        """Test that a stored record reads back equal."""
        account = make_account()
        await any_store.put(account)
        assert await any_store.get(EntityKind.ACCOUNT, account.id) == account

    async def test_get_missing_returns_none(self, any_store):
        """Test that an unknown key is not an error."""
        assert await any_store.get(EntityKind.GOAL, "missing") is None

    async def test_put_is_idempotent(self, any_store):
        """Test that repeating a put leaves one identical record."""
        account = make_account()
        await any_store.put(account)
        await any_store.put(account)
        records = await any_store.get_all(EntityKind.ACCOUNT)
        assert records == [account]

    async def test_put_replaces_existing(self, any_store):
        """Test that last write wins."""
        account = make_account(value="10")
        await any_store.put(account)
        account.nominal_value = Decimal("99")
        await any_store.put(account)
        stored = await any_store.get(EntityKind.ACCOUNT, account.id)
        assert stored.nominal_value == Decimal("99")

    async def test_get_by_account(self, any_store):
        """Test the account -> transaction index."""
        a = make_account(name="A")
        b = make_account(name="B")
        t1 = make_transaction(a.id)
        t2 = make_transaction(a.id)
        t3 = make_transaction(b.id)
        for record in (a, b, t1, t2, t3):
            await any_store.put(record)

        owned = await any_store.get_by_account(a.id)
        assert {t.id for t in owned} == {t1.id, t2.id}
        assert await any_store.get_by_account("nobody") == []

    async def test_reassigned_transaction_moves_index(self, any_store):
        """Test that changing a transaction's owner updates the index."""
        t = make_transaction("a")
        await any_store.put(t)
        t.account_id = "b"
        await any_store.put(t)
        assert await any_store.get_by_account("a") == []
        assert [x.id for x in await any_store.get_by_account("b")] == [t.id]

    async def test_delete_missing_is_noop(self, any_store):
        """Test that deleting an unknown key does not raise."""
        await any_store.delete(EntityKind.TRANSACTION, "missing")

    async def test_delete_removes_from_index(self, any_store):
        """Test that deleted transactions leave the index."""
        t = make_transaction("a")
        await any_store.put(t)
        await any_store.delete(EntityKind.TRANSACTION, t.id)
        assert await any_store.get_by_account("a") == []

    async def test_clear_all(self, any_store):
        """Test that every collection is wiped."""
        await any_store.put(make_account())
        await any_store.save_profile(Profile(name="Sam"))
        await any_store.clear_all()
        assert await any_store.get_all(EntityKind.ACCOUNT) == []
        assert await any_store.get_profile() is None

    async def test_replace_all(self, any_store):
        """Test that replace_all leaves exactly the given records."""
        old = make_account(name="Old")
        await any_store.put(old)
        await any_store.put(make_transaction(old.id))
        await any_store.save_profile(Profile(name="Sam"))

        new = make_account(name="New")
        moved = make_transaction(new.id)
        await any_store.replace_all([new, moved, UserSettings(font_size=18)])

        assert await any_store.get_all(EntityKind.ACCOUNT) == [new]
        assert await any_store.get_by_account(old.id) == []
        assert await any_store.get_by_account(new.id) == [moved]
        assert await any_store.get_profile() is None
        assert (await any_store.get_settings()).font_size == 18

    async def test_singletons(self, any_store):
        """Test profile and settings round trip through fixed keys."""
        await any_store.save_profile(Profile(name="Sam"))
        await any_store.save_settings(UserSettings(dark_mode=True))
        assert (await any_store.get_profile()).name == "Sam"
        assert (await any_store.get_settings()).dark_mode is True

    async def test_loan_value_not_persisted(self, any_store):
        """Test that loans come back without a stored balance."""
        loan = make_loan()
        loan.nominal_value = Decimal("5000")
        await any_store.put(loan)
        stored = await any_store.get(EntityKind.ACCOUNT, loan.id)
        assert stored.nominal_value == Decimal("0")
        assert stored.loan == loan.loan


class TestStoreLifecycle:
    """Tests for reads and writes around init()."""

    async def test_read_before_init_is_empty(self):
        """Test that reads before init return nothing."""
        store = InMemoryEntityStore()
        assert await store.get_all(EntityKind.ACCOUNT) == []
        assert await store.get(EntityKind.ACCOUNT, "x") is None
        assert await store.get_by_account("x") == []

    async def test_write_before_init_raises(self, db_path):
        """Test that writes before init fail visibly."""
        for store in (InMemoryEntityStore(), SQLiteEntityStore(db_path)):
            with pytest.raises(StorageUnavailable):
                await store.put(make_account())

    async def test_sqlite_read_before_init_is_empty(self, db_path):
        """Test the SQLite engine's reads before init."""
        store = SQLiteEntityStore(db_path)
        assert await store.get_all(EntityKind.ACCOUNT) == []
        assert await store.get_profile() is None

    async def test_sqlite_persists_across_reopen(self, db_path):
        """Test that records survive closing the database."""
        account = make_account()
        async with SQLiteEntityStore(db_path) as store:
            await store.put(account)

        async with SQLiteEntityStore(db_path) as store:
            assert await store.get(EntityKind.ACCOUNT, account.id) == account

    async def test_sqlite_open_failure(self, tmp_path):
        """Test that an unusable path raises StorageUnavailable."""
        store = SQLiteEntityStore(tmp_path)
        with pytest.raises(StorageUnavailable):
            await store.init()
        assert store.is_open is False

    async def test_context_manager_closes(self):
        """Test that the async context manager opens and closes."""
        async with InMemoryEntityStore() as store:
            assert store.is_open
        assert not store.is_open


class UnwritableSnapshot(Snapshot):
    """A snapshot whose key cannot be bound as an SQL parameter."""

    @property
    def key(self):
        return object()


class TestReplaceAllAtomicity:
    """Tests that a failed restore leaves the previous contents in place."""

    async def test_sqlite_rolls_back(self, sqlite_store):
        """Test that a failing row undoes the wipe and earlier rows."""
        account = make_account()
        await sqlite_store.put(account)

        with pytest.raises(StorageUnavailable):
            await sqlite_store.replace_all([make_account(name="New"), UnwritableSnapshot()])

        assert await sqlite_store.get_all(EntityKind.ACCOUNT) == [account]
        assert await sqlite_store.get_all(EntityKind.SNAPSHOT) == []

    async def test_sqlite_usable_after_rollback(self, sqlite_store):
        """Test that the connection still accepts writes after a failed restore."""
        with pytest.raises(StorageUnavailable):
            await sqlite_store.replace_all([UnwritableSnapshot()])

        account = make_account()
        await sqlite_store.put(account)
        assert await sqlite_store.get(EntityKind.ACCOUNT, account.id) == account

    async def test_replace_before_init_raises(self, db_path):
        """Test that replace_all is a write and needs an open store."""
        for store in (InMemoryEntityStore(), SQLiteEntityStore(db_path)):
            with pytest.raises(StorageUnavailable):
                await store.replace_all([make_account()])
