"""Valuation engine package."""

from finvue.valuation.engine import (
    convert,
    effective_value,
    first_billing_date,
    goal_progress,
    installments_paid,
    months_between,
    project_loan_balance,
    resolve_account,
    rollup,
    trade_summary,
)
from finvue.valuation.rates import (
    DEFAULT_RATES,
    RateTable,
    normalize_rates,
    to_decimal,
)

__all__ = [
    "DEFAULT_RATES",
    "RateTable",
    "convert",
    "effective_value",
    "first_billing_date",
    "goal_progress",
    "installments_paid",
    "months_between",
    "normalize_rates",
    "project_loan_balance",
    "resolve_account",
    "rollup",
    "to_decimal",
    "trade_summary",
]
