"""
Transaction Query Execution

DESIGN DECISION: Queries are deterministic filters over stored data.
The history and ledger views describe what they want with a
TransactionQuery; this engine resolves it against the store and
returns the matches together with their totals and a per-category
breakdown.

Account-scoped queries go through the store's account index; only
unscoped queries read the whole transaction collection.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Union

from finvue.models.entities import (
    Account,
    Currency,
    EntityKind,
    Transaction,
    TransactionDirection,
    utcnow,
)
from finvue.models.results import (
    ZERO,
    CategoryBreakdown,
    TimeRange,
    TransactionQuery,
    TransactionQueryResult,
)
from finvue.services.storage import EntityStoreInterface


WINDOWS = {
    TimeRange.LAST_7_DAYS: timedelta(days=7),
    TimeRange.LAST_MONTH: timedelta(days=30),
    TimeRange.LAST_YEAR: timedelta(days=365),
}

Bounds = tuple[Optional[datetime], Optional[datetime]]


def _midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


class TransactionQueryExecutor:
    """
    Executes transaction queries against the entity store.

    GUARANTEES:
    - Only returns stored transactions
    - Totals and category breakdown cover every match, not just the returned page
    - Newest transactions first
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        base_currency: Currency = Currency.CAD,
    ):
        self._store = store
        self.base_currency = base_currency

    async def execute(
        self,
        query: TransactionQuery,
        now: Optional[Union[date, datetime]] = None,
    ) -> TransactionQueryResult:
        """Run a query. Storage errors propagate to the caller."""
        if query.account_id:
            transactions = await self._store.get_by_account(query.account_id)
        else:
            transactions = await self._store.get_all(EntityKind.TRANSACTION)

        accounts = {
            account.id: account
            for account in await self._store.get_all(EntityKind.ACCOUNT)
        }
        account_names = {key: account.name.lower() for key, account in accounts.items()}

        bounds = self._bounds(query, now)
        matches = [
            t for t in transactions
            if self._matches(t, query, bounds, account_names)
        ]
        matches.sort(key=lambda t: t.occurred_at, reverse=True)

        return TransactionQueryResult(
            transactions=matches[:query.limit],
            match_count=len(matches),
            total_inflow=self._total(matches, TransactionDirection.INFLOW),
            total_outflow=self._total(matches, TransactionDirection.OUTFLOW),
            categories=self._breakdown(matches, accounts),
        )

    @staticmethod
    def _bounds(
        query: TransactionQuery,
        now: Optional[Union[date, datetime]],
    ) -> Bounds:
        """Earliest and latest occurrence times a match may have."""
        if query.time_range == TimeRange.CUSTOM:
            start = _midnight(query.start) if query.start else None
            # whole end day included, next midnight excluded
            end = _midnight(query.end) + timedelta(days=1) if query.end else None
            return start, end

        window = WINDOWS.get(query.time_range)
        if window is None:
            return None, None
        if now is None:
            now = utcnow()
        elif not isinstance(now, datetime):
            now = _midnight(now)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now - window, None

    @staticmethod
    def _matches(
        transaction: Transaction,
        query: TransactionQuery,
        bounds: Bounds,
        account_names: dict[str, str],
    ) -> bool:
        start, end = bounds
        if query.direction and transaction.direction != query.direction:
            return False
        if query.category and transaction.category != query.category:
            return False
        if start is not None and transaction.occurred_at < start:
            return False
        if end is not None and transaction.occurred_at >= end:
            return False
        if query.search:
            needle = query.search.lower()
            haystack = (
                transaction.note.lower(),
                transaction.category.value.lower(),
                account_names.get(transaction.account_id, ""),
                str(transaction.amount),
            )
            if not any(needle in field for field in haystack):
                return False
        return True

    @staticmethod
    def _total(
        transactions: list[Transaction],
        direction: TransactionDirection,
    ) -> Decimal:
        return sum(
            (t.amount for t in transactions if t.direction == direction),
            ZERO,
        )

    def _breakdown(
        self,
        transactions: list[Transaction],
        accounts: dict[str, Account],
    ) -> list[CategoryBreakdown]:
        """
        Group matches by category and by the currency of their account.

        Amounts are never converted; transactions whose account is gone
        are counted in the base currency.
        """
        groups: dict[tuple, CategoryBreakdown] = {}
        for transaction in transactions:
            account = accounts.get(transaction.account_id)
            currency = account.currency if account else self.base_currency
            key = (transaction.category, currency)
            group = groups.get(key)
            if group is None:
                group = groups[key] = CategoryBreakdown(
                    category=transaction.category,
                    direction=transaction.direction,
                    currency=currency,
                )
            group.total += transaction.amount
            group.count += 1
        return sorted(groups.values(), key=lambda g: g.total, reverse=True)
