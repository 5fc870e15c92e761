"""
Valuation Engine

Pure functions that turn stored entity values into currency-normalized,
time-aware figures: conversions, EMI loan balances, category rollups,
goal progress and trade P/L.

DESIGN DECISION: Nothing here touches the store or any hidden state.
Every function is a function of (entities, rate table, currency, now).
Loan balances in particular are recomputed on every call and never
cached, because "now" keeps moving.

Numeric edge cases (zero denominators, overpaid loans, overshooting
goals) are clamped or zero-filled, never raised.
"""

import calendar
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from finvue.models.entities import (
    Account,
    AccountCategory,
    Currency,
    Goal,
    LoanFields,
    TradePosition,
)
from finvue.models.results import (
    HUNDRED,
    ZERO,
    GoalProgress,
    PositionValuation,
    Rollup,
    TradeSummary,
)
from finvue.valuation.rates import Number, to_decimal


RateLookup = Mapping[str, Mapping[str, Number]]
Moment = Union[date, datetime]


def _as_date(now: Optional[Moment]) -> date:
    """Strip a moment to a whole calendar day."""
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


def _clamp_day(year: int, month: int, day: int) -> date:
    """The given day, or the month's last day if the month is shorter."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


# =============================================================================
# CURRENCY CONVERSION
# =============================================================================

def convert(
    value: Decimal,
    from_currency: Currency,
    to_currency: Currency,
    rates: RateLookup,
) -> Decimal:
    """
    Convert a value between currencies.

    Same-currency conversion returns the value unchanged without
    consulting the table.
    """
    if from_currency == to_currency:
        return value
    return value * to_decimal(rates[from_currency][to_currency])


# =============================================================================
# EMI PROJECTION
# =============================================================================

def first_billing_date(start_date: date, billing_day: int) -> date:
    """
    Date of the first installment.

    Billed in the origination month when the billing day falls on or
    after the origination day, otherwise in the following month. A
    billing day past the end of a month lands on its last day.
    """
    if billing_day >= start_date.day:
        return _clamp_day(start_date.year, start_date.month, billing_day)
    if start_date.month == 12:
        return _clamp_day(start_date.year + 1, 1, billing_day)
    return _clamp_day(start_date.year, start_date.month + 1, billing_day)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start's month to end's month."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def installments_paid(loan: LoanFields, now: Optional[Moment] = None) -> int:
    """Number of installments charged on or before `now`."""
    today = _as_date(now)
    first = first_billing_date(loan.start_date, loan.billing_day)

    if today < first:
        return 0

    paid = months_between(first, today)
    if today.day >= loan.billing_day:
        paid += 1
    return paid


def project_loan_balance(loan: LoanFields, now: Optional[Moment] = None) -> Decimal:
    """
    Remaining balance of an EMI loan as of `now`.

    Never negative, even when the schedule overpays the principal.
    """
    remaining = loan.principal - installments_paid(loan, now) * loan.monthly_installment
    return max(ZERO, remaining)


def effective_value(account: Account, now: Optional[Moment] = None) -> Decimal:
    """The account's value in its own currency, projecting loans."""
    if account.is_loan and account.loan is not None:
        return project_loan_balance(account.loan, now)
    return account.nominal_value


def resolve_account(account: Account, now: Optional[Moment] = None) -> Account:
    """Copy of the account whose `nominal_value` is its effective value."""
    if not account.is_loan:
        return account
    return account.model_copy(update={"nominal_value": effective_value(account, now)})


# =============================================================================
# ROLLUPS
# =============================================================================

def rollup(
    accounts: Iterable[Account],
    target_currency: Currency,
    rates: RateLookup,
    now: Optional[Moment] = None,
) -> Rollup:
    """
    Sum effective account values per category in one currency.

    Net worth and allocation percentages are derived by `Rollup`.
    """
    totals = {category: ZERO for category in AccountCategory}

    for account in accounts:
        value = convert(effective_value(account, now), account.currency, target_currency, rates)
        totals[account.category] += value

    return Rollup(
        currency=target_currency,
        savings=totals[AccountCategory.SAVINGS],
        investments=totals[AccountCategory.INVESTMENTS],
        debts=totals[AccountCategory.DEBTS],
        loans=totals[AccountCategory.LOAN],
    )


def goal_progress(
    goal: Goal,
    accounts: Iterable[Account],
    rates: RateLookup,
    now: Optional[Moment] = None,
) -> GoalProgress:
    """
    Progress of a goal from the accounts it links.

    Accounts not linked by the goal are ignored, and links to accounts
    that are not supplied contribute nothing. The percentage is
    clamped to [0, 100].
    """
    linked = [a for a in accounts if goal.links(a.id)]
    current = sum(
        (convert(effective_value(a, now), a.currency, goal.currency, rates) for a in linked),
        ZERO,
    )

    target = goal.target_amount
    if target == 0:
        percentage = HUNDRED if current > 0 else ZERO
    else:
        percentage = min(HUNDRED, max(ZERO, current / target * HUNDRED))

    return GoalProgress(
        goal_id=goal.id,
        currency=goal.currency,
        target_amount=target,
        current_total=current,
        percentage=percentage,
        remaining=max(ZERO, target - current),
        linked_accounts_found=len(linked),
    )


def trade_summary(
    positions: Iterable[TradePosition],
    live_prices: Mapping[str, Number],
    view_currency: Currency,
    rates: RateLookup,
) -> TradeSummary:
    """
    Value trade positions against live prices.

    `live_prices` maps symbols (any case) to prices in each position's
    own currency. Positions without a quote are valued at their
    average cost, i.e. with zero profit.
    """
    quotes = {symbol.upper(): to_decimal(price) for symbol, price in live_prices.items()}
    valuations = []

    for position in positions:
        quote = quotes.get(position.symbol)
        price = quote if quote is not None else position.average_cost
        invested = position.average_cost * position.quantity
        current = price * position.quantity
        valuations.append(PositionValuation(
            position_id=position.id,
            symbol=position.symbol,
            price=price,
            price_is_live=quote is not None,
            invested=convert(invested, position.currency, view_currency, rates),
            current_value=convert(current, position.currency, view_currency, rates),
        ))

    return TradeSummary(
        currency=view_currency,
        invested=sum((v.invested for v in valuations), ZERO),
        current_value=sum((v.current_value for v in valuations), ZERO),
        positions=valuations,
    )
