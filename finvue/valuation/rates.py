"""
Exchange rate tables.

A rate table maps each currency to a mapping from every currency
(itself included, at 1) to a multiplicative conversion factor.
Rates are supplied by an external market-rate collaborator; this
module only normalizes their shape.
"""

from decimal import Decimal
from typing import Mapping, Union

from finvue.models.entities import Currency


Number = Union[Decimal, int, float, str]
RateTable = dict[Currency, dict[Currency, Decimal]]


# Fallback table used until live rates arrive
DEFAULT_RATES: RateTable = {
    Currency.CAD: {Currency.CAD: Decimal("1"), Currency.INR: Decimal("61.45"), Currency.USD: Decimal("0.74")},
    Currency.INR: {Currency.CAD: Decimal("0.016"), Currency.INR: Decimal("1"), Currency.USD: Decimal("0.012")},
    Currency.USD: {Currency.CAD: Decimal("1.35"), Currency.INR: Decimal("83.15"), Currency.USD: Decimal("1")},
}


def to_decimal(value: Number) -> Decimal:
    """Coerce a number to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def normalize_rates(raw: Mapping[str, Mapping[str, Number]]) -> RateTable:
    """
    Build a rate table from a collaborator payload.

    Keys may be plain strings; factors may be floats or strings.
    The identity factor is filled in for every known currency.
    """
    table: RateTable = {}
    for source, targets in raw.items():
        source_currency = Currency(source)
        row = {Currency(target): to_decimal(factor) for target, factor in targets.items()}
        row[source_currency] = Decimal("1")
        table[source_currency] = row
    return table
