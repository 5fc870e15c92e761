"""Pytest configuration and fixtures."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from finvue.audit import AuditLogger
from finvue.models.entities import (
    Account,
    AccountCategory,
    Currency,
    Goal,
    LoanFields,
    Transaction,
    TransactionCategory,
    TransactionDirection,
)
from finvue.services.storage import InMemoryEntityStore, SQLiteEntityStore
from finvue.valuation import DEFAULT_RATES


@pytest.fixture
async def store():
    """An opened in-memory entity store."""
    store = InMemoryEntityStore()
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "finvue.db"


@pytest.fixture
async def sqlite_store(db_path):
    """An opened SQLite entity store backed by a temporary file."""
    store = SQLiteEntityStore(db_path)
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def rates():
    return DEFAULT_RATES


@pytest.fixture
def audit_logger():
    return AuditLogger(history_size=100)


def make_account(
    name="Chequing",
    category=AccountCategory.SAVINGS,
    currency=Currency.CAD,
    value="1000",
    **kwargs,
) -> Account:
    return Account(
        name=name,
        category=category,
        currency=currency,
        nominal_value=Decimal(value),
        **kwargs,
    )


def make_loan(
    name="Car Loan",
    currency=Currency.CAD,
    principal="12000",
    installment="500",
    start_date=date(2024, 1, 15),
    billing_day=10,
    **kwargs,
) -> Account:
    return Account(
        name=name,
        category=AccountCategory.LOAN,
        currency=currency,
        loan=LoanFields(
            principal=Decimal(principal),
            monthly_installment=Decimal(installment),
            start_date=start_date,
            billing_day=billing_day,
        ),
        **kwargs,
    )


def make_transaction(
    account_id,
    amount="50",
    direction=TransactionDirection.OUTFLOW,
    category=TransactionCategory.FOOD,
    note="",
    occurred_at=None,
    **kwargs,
) -> Transaction:
    return Transaction(
        account_id=account_id,
        amount=Decimal(amount),
        direction=direction,
        category=category,
        note=note,
        occurred_at=occurred_at or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        **kwargs,
    )


def make_goal(
    linked_account_ids=(),
    target="1000",
    currency=Currency.CAD,
    name="Emergency Fund",
    **kwargs,
) -> Goal:
    return Goal(
        name=name,
        target_amount=Decimal(target),
        currency=currency,
        linked_account_ids=list(linked_account_ids),
        **kwargs,
    )
