"""
Core Data Models for Finance Tracker

These models define the strict schemas for every transaction, goal set and
derived aggregate in the system. They are designed to:
1. Enforce type safety at runtime
2. Name the offending field when validation fails
3. Be serializable for the snapshot cache and the remote store
4. Keep money exact (Decimal, never float)

DESIGN DECISION: Records are frozen. A transaction is "updated" only by the
repository replacing the stored instance with a re-validated copy, so no
caller can mutate shared state behind the repository's back.
"""

import datetime as dt
import re
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from finance_tracker.errors import ValidationError


UNCATEGORIZED = "uncategorized"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

Money = Annotated[
    Decimal,
    Field(ge=0, decimal_places=2, allow_inf_nan=False),
]
PositiveMoney = Annotated[
    Decimal,
    Field(gt=0, decimal_places=2, allow_inf_nan=False),
]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Transaction kinds.

    The type decides which aggregate bucket an amount contributes to.
    It is never free text.
    """
    INCOME = "income"
    EXPENSE = "expense"
    SAVINGS = "savings"
    INVESTMENT = "investment"


# =============================================================================
# BASE MODEL
# =============================================================================

class FinanceModel(BaseModel):
    """
    Shared configuration for all finance models.

    JSON uses camelCase names (expectedProfit, monthlyBudget, ...) to match
    the snapshot document format; Python code uses snake_case. Both are
    accepted on input.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        loc_by_alias=False,
        extra="forbid",
    )


def _parse_literal_date(value: Any) -> Any:
    """Accept a date or a strict YYYY-MM-DD string; nothing with a time part."""
    if isinstance(value, dt.datetime):
        raise ValueError("date must not carry a time of day")
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not _DATE_PATTERN.match(text):
            raise ValueError(f"date must be formatted YYYY-MM-DD, got {value!r}")
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            raise ValueError(f"not a calendar date: {value!r}")
    raise ValueError(f"date must be a YYYY-MM-DD string, got {type(value).__name__}")


def _normalize_category(value: Any) -> Any:
    """Blank categories are stored as None."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(FinanceModel):
    """
    A transaction before it has an id.

    This is what callers submit to add_transaction. The repository (or the
    remote store) assigns the id.
    """

    date: dt.date = Field(
        ...,
        description="Day the transaction happened (no time, no timezone)"
    )
    type: TransactionType = Field(
        ...,
        description="Which bucket the amount counts towards"
    )
    amount: PositiveMoney = Field(
        ...,
        description="Strictly positive amount in the data set's currency"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Free-text label (required)"
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Optional free-text category"
    )

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return _parse_literal_date(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        return _normalize_category(v)

    @property
    def month_key(self) -> str:
        """The YYYY-MM month this transaction literally falls in."""
        return f"{self.date.year:04d}-{self.date.month:02d}"

    @property
    def year(self) -> int:
        return self.date.year

    @property
    def category_label(self) -> str:
        """Category used for grouping; missing categories share a sentinel."""
        return self.category or UNCATEGORIZED


class Transaction(TransactionDraft):
    """
    A persisted transaction.

    The id is assigned once at creation and never changes.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )


class TransactionUpdate(FinanceModel):
    """
    A partial update to an existing transaction.

    Only the fields the caller actually supplied are merged; omitted fields
    keep their current value. The id is not updatable (extra="forbid"
    rejects it).
    """

    date: Optional[dt.date] = None
    type: Optional[TransactionType] = None
    amount: Optional[PositiveMoney] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    category: Optional[str] = Field(default=None, max_length=100)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        if v is None:
            return v
        return _parse_literal_date(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> Any:
        return _normalize_category(v)

    def changes(self) -> dict[str, Any]:
        """The explicitly supplied fields, keyed by field name."""
        return self.model_dump(exclude_unset=True)


# =============================================================================
# GOALS
# =============================================================================

class AnnualGoals(FinanceModel):
    """
    Financial targets for one calendar year.

    There is at most one AnnualGoals per year; setting goals again for a
    year replaces the previous set. All four targets are always submitted.
    """

    year: int = Field(
        ...,
        gt=0,
        description="Calendar year these goals apply to"
    )
    expected_profit: Money = Field(
        ...,
        description="Target total income for the year"
    )
    monthly_budget: Money = Field(
        ...,
        description="Expense ceiling per month"
    )
    emergency_reserve: Money = Field(
        ...,
        description="Target cumulative savings for the year"
    )
    planned_investments: Money = Field(
        ...,
        description="Target cumulative investments for the year"
    )


# =============================================================================
# DERIVED AGGREGATES (computed on every query, never stored)
# =============================================================================

class PeriodTotals(FinanceModel):
    """Per-type sums over a time window."""

    transactions: list[Transaction] = Field(default_factory=list)
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    total_savings: Decimal = Decimal("0")
    total_investments: Decimal = Decimal("0")

    @computed_field  # type: ignore[misc]
    @property
    def net_balance(self) -> Decimal:
        """Income left after expenses, savings and investments."""
        return (
            self.total_income
            - self.total_expenses
            - self.total_savings
            - self.total_investments
        )

    @property
    def operating_balance(self) -> Decimal:
        """Legacy balance: income minus expenses only."""
        return self.total_income - self.total_expenses

    @property
    def has_activity(self) -> bool:
        return any(
            total != 0
            for total in (
                self.total_income,
                self.total_expenses,
                self.total_savings,
                self.total_investments,
            )
        )


class MonthlyData(PeriodTotals):
    """Aggregates for one calendar month."""

    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="YYYY-MM month key"
    )


class AnnualData(PeriodTotals):
    """Aggregates for one calendar year."""

    year: int = Field(..., gt=0)


class CategoryTotal(FinanceModel):
    """Sum of one transaction type within one category."""

    category: str
    amount: Decimal
    share: Decimal = Field(
        ...,
        description="Percentage of the type total this category represents"
    )


class GoalTargets(FinanceModel):
    """Goal amounts scaled to a period of period_months months."""

    period_months: int = Field(..., ge=1, le=12)
    income_target: Decimal
    expense_limit: Decimal
    savings_target: Decimal
    investment_target: Decimal


class GoalProgress(FinanceModel):
    """
    Progress towards a year's goals, as raw percentages.

    A ratio of None means "undefined": either no goals exist for the year
    (has_goals is False) or that target is zero. Ratios are never clamped;
    capping at 100% is a display concern.
    """

    year: int
    period_months: int = Field(..., ge=1, le=12)
    has_goals: bool
    targets: Optional[GoalTargets] = None
    income_progress: Optional[Decimal] = None
    expense_progress: Optional[Decimal] = None
    savings_progress: Optional[Decimal] = None
    investment_progress: Optional[Decimal] = None

    @property
    def expenses_within_budget(self) -> Optional[bool]:
        if self.expense_progress is None:
            return None
        return self.expense_progress <= 100


# =============================================================================
# SNAPSHOT (local cache / remote load format)
# =============================================================================

class FinanceSnapshot(FinanceModel):
    """
    The full data set of one user.

    Serialized as {"goals": [...], "transactions": [...]}. Money is written
    as decimal strings so no precision is lost; numbers are accepted when
    reading.
    """

    goals: list[AnnualGoals] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, payload: str) -> "FinanceSnapshot":
        try:
            return cls.model_validate_json(payload)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc, cls.__name__) from exc


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_model(model_cls: type[ModelT], data: Any) -> ModelT:
    """
    Coerce data (a mapping or a model instance) into model_cls.

    Raises:
        ValidationError: naming the first offending field
    """
    if type(data) is model_cls:
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(include=set(model_cls.model_fields))
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc, model_cls.__name__) from exc


def validate_draft(data: Any) -> TransactionDraft:
    return validate_model(TransactionDraft, data)


def validate_transaction(data: Any) -> Transaction:
    return validate_model(Transaction, data)


def validate_update(data: Any) -> TransactionUpdate:
    return validate_model(TransactionUpdate, data)


def validate_goals(data: Any) -> AnnualGoals:
    return validate_model(AnnualGoals, data)
