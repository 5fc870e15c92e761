"""
Result Models for FinVue

Values produced by the valuation engine, the integrity manager,
the backup validator and the transaction query executor. None of
these are persisted; they are recomputed whenever they are needed.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from finvue.models.entities import (
    AccountCategory,
    Currency,
    Transaction,
    TransactionCategory,
    TransactionDirection,
    utcnow,
)


HUNDRED = Decimal("100")
ONE = Decimal("1")
ZERO = Decimal("0")


# =============================================================================
# VALUATION MODELS
# =============================================================================

class CategoryTotals(BaseModel):
    """The four category totals, all in one currency."""

    currency: Currency
    savings: Decimal = ZERO
    investments: Decimal = ZERO
    debts: Decimal = ZERO
    loans: Decimal = ZERO

    def total_for(self, category: AccountCategory) -> Decimal:
        return {
            AccountCategory.SAVINGS: self.savings,
            AccountCategory.INVESTMENTS: self.investments,
            AccountCategory.DEBTS: self.debts,
            AccountCategory.LOAN: self.loans,
        }[category]


class Rollup(CategoryTotals):
    """
    Category totals plus the figures derived from them.

    Allocation percentages are relative to total assets
    (savings + investments). Liabilities may therefore exceed 100%.
    """

    @property
    def total_assets(self) -> Decimal:
        return self.savings + self.investments

    @property
    def total_liabilities(self) -> Decimal:
        return self.debts + self.loans

    @property
    def net_worth(self) -> Decimal:
        return self.total_assets - self.total_liabilities

    def allocation(self, category: AccountCategory) -> Decimal:
        """
        Percentage of total assets, with the denominator floored at one
        unit. 0 when there are no assets at all.
        """
        if self.total_assets <= 0:
            return ZERO
        denominator = max(self.total_assets, ONE)
        return self.total_for(category) / denominator * HUNDRED

    @property
    def allocations(self) -> dict[AccountCategory, Decimal]:
        return {category: self.allocation(category) for category in AccountCategory}


class MilestoneStatus(str, Enum):
    """Progress band of a goal."""
    IN_PROGRESS = "In Progress"
    HALFWAY = "Halfway"
    NEARLY_THERE = "Nearly There"
    COMPLETE = "Complete"

    @classmethod
    def for_percentage(cls, percentage: Decimal) -> "MilestoneStatus":
        if percentage >= 100:
            return cls.COMPLETE
        if percentage >= 75:
            return cls.NEARLY_THERE
        if percentage >= 50:
            return cls.HALFWAY
        return cls.IN_PROGRESS


class GoalProgress(BaseModel):
    """How far a goal is, in the goal's own currency."""

    goal_id: str
    currency: Currency
    target_amount: Decimal
    current_total: Decimal
    percentage: Decimal = Field(..., ge=0, le=100)
    remaining: Decimal = Field(..., ge=0)
    linked_accounts_found: int = Field(default=0, ge=0)

    @property
    def milestone(self) -> MilestoneStatus:
        return MilestoneStatus.for_percentage(self.percentage)

    @property
    def is_complete(self) -> bool:
        return self.milestone == MilestoneStatus.COMPLETE


class PositionValuation(BaseModel):
    """One trade position valued in the view currency."""

    position_id: str
    symbol: str
    price: Decimal
    price_is_live: bool
    invested: Decimal
    current_value: Decimal

    @property
    def profit_loss(self) -> Decimal:
        return self.current_value - self.invested


class TradeSummary(BaseModel):
    """Totals across all trade positions in the view currency."""

    currency: Currency
    invested: Decimal = ZERO
    current_value: Decimal = ZERO
    positions: list[PositionValuation] = Field(default_factory=list)

    @property
    def profit_loss(self) -> Decimal:
        return self.current_value - self.invested

    @property
    def profit_loss_percentage(self) -> Decimal:
        if self.invested <= 0:
            return ZERO
        return self.profit_loss / self.invested * HUNDRED


# =============================================================================
# INTEGRITY MODELS
# =============================================================================

class IntegrityReport(BaseModel):
    """What a cascade delete or repair pass changed."""

    account_id: Optional[str] = Field(
        default=None,
        description="Deleted account, or None for a repair pass"
    )
    transactions_deleted: list[str] = Field(default_factory=list)
    goals_updated: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.account_id or self.transactions_deleted or self.goals_updated)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Location of the issue, e.g. 'portfolios[2].currency'"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'orphaned_reference')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage backup validation.

    Stage 1: Schema validation (keys, types, records parse)
    Stage 2: Semantic validation (duplicates, dangling references)
    """

    validated_at: datetime = Field(default_factory=utcnow)

    schema_valid: bool
    semantic_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# QUERY MODELS
# =============================================================================

class TimeRange(str, Enum):
    """Windows used by the transaction history view."""
    LAST_7_DAYS = "7d"
    LAST_MONTH = "1m"
    LAST_YEAR = "1y"
    CUSTOM = "custom"
    ALL = "all"


class TransactionQuery(BaseModel):
    """Filters applied to the transaction history."""

    account_id: Optional[str] = None
    direction: Optional[TransactionDirection] = None
    category: Optional[TransactionCategory] = None
    time_range: TimeRange = TimeRange.ALL
    start: Optional[date] = Field(
        default=None,
        description="First day of a custom range, inclusive"
    )
    end: Optional[date] = Field(
        default=None,
        description="Last day of a custom range, inclusive"
    )
    search: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Case-insensitive text matched against note, category, account name and amount"
    )
    limit: int = Field(default=100, ge=1, le=10000)

    @model_validator(mode='after')
    def validate_custom_range(self) -> 'TransactionQuery':
        if self.start and self.end and self.start > self.end:
            raise ValueError("start must not be after end")
        return self


class CategoryBreakdown(BaseModel):
    """Total and count of matching transactions for one category and currency."""

    category: TransactionCategory
    direction: TransactionDirection
    currency: Currency
    total: Decimal = ZERO
    count: int = Field(default=0, ge=0)


class TransactionQueryResult(BaseModel):
    """Matching transactions (newest first) and their totals."""

    executed_at: datetime = Field(default_factory=utcnow)
    transactions: list[Transaction] = Field(default_factory=list)
    match_count: int = Field(default=0, ge=0)
    total_inflow: Decimal = ZERO
    total_outflow: Decimal = ZERO
    categories: list[CategoryBreakdown] = Field(
        default_factory=list,
        description="Per category and currency, largest total first"
    )

    @property
    def net(self) -> Decimal:
        return self.total_inflow - self.total_outflow

    @property
    def data_found(self) -> bool:
        return self.match_count > 0
