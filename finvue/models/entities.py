"""
Core Entity Models for FinVue

These models define the records held in the entity store:
accounts ("portfolios"), transactions, goals, trade positions,
snapshots and the two singleton records (profile and settings).

DESIGN DECISION: Every record is a Pydantic v2 model that knows
its collection (`kind`) and its storage key (`key`). Stores persist
`to_record()` output and rebuild models with `from_record()`, so the
in-memory and file-backed engines see exactly the same data.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


PROFILE_KEY = "user_profile"
SETTINGS_KEY = "app_settings"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_id() -> str:
    """Fresh opaque record identifier."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntityKind(str, Enum):
    """
    Collections held by the store.

    The values double as the top-level keys of the backup document.
    """
    ACCOUNT = "portfolios"
    TRANSACTION = "transactions"
    GOAL = "goals"
    TRADE = "trades"
    SNAPSHOT = "snapshots"
    PROFILE = "profile"
    SETTINGS = "settings"

    @property
    def is_singleton(self) -> bool:
        return self in (EntityKind.PROFILE, EntityKind.SETTINGS)


class Currency(str, Enum):
    """Supported currencies."""
    CAD = "CAD"
    INR = "INR"
    USD = "USD"


class AccountCategory(str, Enum):
    """
    Account categories.

    Savings and Investments are assets; Debts and Loan are liabilities.
    """
    SAVINGS = "Savings"
    INVESTMENTS = "Investments"
    DEBTS = "Debts"
    LOAN = "Loan"


class TransactionDirection(str, Enum):
    """Money flowing into or out of an account."""
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class TransactionCategory(str, Enum):
    """Transaction categories."""
    # Expense categories
    FOOD = "Food"
    RENT = "Rent"
    UTILITIES = "Utilities"
    GROCERY = "Grocery"
    ENTERTAINMENT = "Entertainment"
    # Income categories
    SALARY = "Salary"
    # Shared
    OTHER = "Other"


# =============================================================================
# BASE RECORDS
# =============================================================================

class Record(BaseModel):
    """Base class for everything the entity store persists."""

    model_config = ConfigDict(str_strip_whitespace=True)

    kind: ClassVar[EntityKind]

    @property
    def key(self) -> str:
        """Storage key for this record."""
        return self.id

    def to_record(self) -> dict[str, Any]:
        """JSON-compatible payload written to storage and backups."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Record":
        return cls.model_validate(data)


class MutableRecord(Record):
    """A record that can be edited in place and tracks its last write."""

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last write timestamp (advisory, last write wins)"
    )

    @field_validator('updated_at')
    @classmethod
    def updated_at_as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def touch(self) -> "MutableRecord":
        """Stamp `updated_at` with the current time."""
        self.updated_at = utcnow()
        return self


# =============================================================================
# ACCOUNTS
# =============================================================================

class LoanFields(BaseModel):
    """
    Structural fields of an installment (EMI) loan.

    These four fields are the only authoritative loan data; the
    remaining balance is always projected from them.
    """

    principal: Decimal = Field(
        ...,
        ge=0,
        description="Total amount owed at origination"
    )
    monthly_installment: Decimal = Field(
        ...,
        ge=0,
        description="Amount charged on every billing day"
    )
    start_date: date = Field(
        ...,
        description="Date the loan was originated"
    )
    billing_day: int = Field(
        default=1,
        ge=1,
        le=31,
        description="Day of month on which each installment is charged"
    )


class Account(MutableRecord):
    """
    A tracked financial holding.

    CRITICAL: for Loan accounts `nominal_value` is derived, never
    authoritative. It is not persisted and must be recomputed with the
    valuation engine whenever it is needed.
    """

    kind: ClassVar[EntityKind] = EntityKind.ACCOUNT

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    category: AccountCategory
    currency: Currency
    nominal_value: Decimal = Field(
        default=Decimal("0"),
        description="Current value in the account's own currency"
    )
    loan: Optional[LoanFields] = None

    @model_validator(mode='after')
    def validate_loan_fields(self) -> 'Account':
        """Loan fields exist exactly when the account is a loan."""
        if self.category == AccountCategory.LOAN and self.loan is None:
            raise ValueError("Loan accounts require loan fields")
        if self.category != AccountCategory.LOAN and self.loan is not None:
            raise ValueError("Only loan accounts may carry loan fields")
        return self

    @property
    def is_loan(self) -> bool:
        return self.category == AccountCategory.LOAN

    def to_record(self) -> dict[str, Any]:
        exclude = {"nominal_value"} if self.is_loan else None
        return self.model_dump(mode="json", exclude=exclude)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(MutableRecord):
    """A single inflow or outflow, owned by exactly one account."""

    kind: ClassVar[EntityKind] = EntityKind.TRANSACTION

    id: str = Field(default_factory=new_id, min_length=1)
    account_id: str = Field(
        ...,
        min_length=1,
        description="Owning account"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Always positive; direction carries the sign"
    )
    direction: TransactionDirection
    category: TransactionCategory = TransactionCategory.OTHER
    note: str = Field(default="", max_length=500)
    occurred_at: datetime = Field(default_factory=utcnow)

    @field_validator('occurred_at')
    @classmethod
    def occurred_at_as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def signed_amount(self) -> Decimal:
        if self.direction == TransactionDirection.OUTFLOW:
            return -self.amount
        return self.amount


# =============================================================================
# GOALS
# =============================================================================

class Goal(MutableRecord):
    """
    A savings goal tracked against one or more accounts.

    `linked_account_ids` are weak references: deleting an account
    prunes its id here, it never deletes the goal.
    """

    kind: ClassVar[EntityKind] = EntityKind.GOAL

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal
    currency: Currency
    linked_account_ids: list[str] = Field(default_factory=list)
    deadline: Optional[date] = None
    color_tag: str = Field(default="bg-blue-500", max_length=50)

    @field_validator('linked_account_ids')
    @classmethod
    def dedupe_links(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    def links(self, account_id: str) -> bool:
        return account_id in self.linked_account_ids


# =============================================================================
# TRADING
# =============================================================================

class TradePosition(MutableRecord):
    """An open position valued against an externally supplied live price."""

    kind: ClassVar[EntityKind] = EntityKind.TRADE

    id: str = Field(default_factory=new_id, min_length=1)
    symbol: str = Field(..., min_length=1, max_length=20)
    average_cost: Decimal = Field(..., ge=0)
    quantity: Decimal = Field(..., ge=0)
    currency: Currency

    @field_validator('symbol')
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.upper()


# =============================================================================
# SNAPSHOTS
# =============================================================================

class Snapshot(Record):
    """
    Immutable point-in-time record of the four category totals.

    Never mutated after creation; deleted only by explicit user action.
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[EntityKind] = EntityKind.SNAPSHOT

    id: str = Field(default_factory=new_id, min_length=1)
    captured_at: datetime = Field(default_factory=utcnow)
    currency: Currency = Currency.CAD
    savings_total: Decimal = Decimal("0")
    investments_total: Decimal = Decimal("0")
    debt_total: Decimal = Decimal("0")
    loan_total: Decimal = Decimal("0")

    @field_validator('captured_at')
    @classmethod
    def captured_at_as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def net_worth(self) -> Decimal:
        return (
            self.savings_total + self.investments_total
            - self.debt_total - self.loan_total
        )


# =============================================================================
# SINGLETONS
# =============================================================================

class Profile(MutableRecord):
    """The user's profile. One per store, created at first run."""

    kind: ClassVar[EntityKind] = EntityKind.PROFILE

    name: str = Field(default="", max_length=200)
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: str = Field(default="", max_length=200)
    gender: Optional[str] = None
    age: Optional[str] = None
    dob: Optional[date] = None
    avatar: Optional[str] = None
    sync_enabled: bool = False
    last_active: Optional[datetime] = None

    @property
    def key(self) -> str:
        return PROFILE_KEY


class UserSettings(MutableRecord):
    """Display preferences. One per store, created at first run."""

    kind: ClassVar[EntityKind] = EntityKind.SETTINGS

    dark_mode: bool = False
    font_size: int = Field(default=16, ge=8, le=40)
    privacy_mode: bool = False
    auto_sync: bool = True

    @property
    def key(self) -> str:
        return SETTINGS_KEY


RECORD_TYPES: dict[EntityKind, type[Record]] = {
    EntityKind.ACCOUNT: Account,
    EntityKind.TRANSACTION: Transaction,
    EntityKind.GOAL: Goal,
    EntityKind.TRADE: TradePosition,
    EntityKind.SNAPSHOT: Snapshot,
    EntityKind.PROFILE: Profile,
    EntityKind.SETTINGS: UserSettings,
}


def record_from_payload(kind: EntityKind, data: dict[str, Any]) -> Record:
    """Rebuild a record of the given kind from its stored payload."""
    return RECORD_TYPES[kind].from_record(data)
