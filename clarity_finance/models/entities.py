"""
Entity Schemas for Clarity Finance

These models define the insert contract for every entity stored by the
data layer. If data doesn't match the schema, it's rejected with a clear
error before any storage access.

DESIGN DECISION: Field rules are expressed as reusable Annotated types
(PositiveAmount, DateString, ...). The update view of each entity is
derived from these models by the schema registry, and because the rules
live in the field annotations they survive that derivation unchanged.
Cross-field rules are model validators and apply to inserts only. They are
reported alongside any field errors.

Store-managed columns (id, created_at, updated_at, is_deleted) are NOT
part of any schema; only the data store writes them.
"""

import json
import re
from enum import Enum
from typing import Annotated, Any, Mapping, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    model_validator,
)
from pydantic_core import PydanticCustomError


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntityType(str, Enum):
    """
    Every entity the data layer knows about.

    Values are the storage table names.
    """
    ACCOUNTS = "accounts"
    INCOME_SOURCES = "income_sources"
    BUCKETS = "buckets"
    CATEGORIES = "categories"
    PLANNED_EXPENSES = "planned_expenses"
    GOALS = "goals"
    TRANSACTIONS = "transactions"
    PLANNING_SCENARIOS = "planning_scenarios"
    CONFIG = "config"

    @property
    def table(self) -> str:
        return self.value

    @property
    def event_prefix(self) -> str:
        """Singular, hyphenated name used for bus events (e.g. 'income-source')."""
        return _EVENT_PREFIXES[self]


_EVENT_PREFIXES = {
    EntityType.ACCOUNTS: "account",
    EntityType.INCOME_SOURCES: "income-source",
    EntityType.BUCKETS: "bucket",
    EntityType.CATEGORIES: "category",
    EntityType.PLANNED_EXPENSES: "planned-expense",
    EntityType.GOALS: "goal",
    EntityType.TRANSACTIONS: "transaction",
    EntityType.PLANNING_SCENARIOS: "planning-scenario",
    EntityType.CONFIG: "config",
}


class AccountType(str, Enum):
    """Supported bank account types."""
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    IRA = "ira"
    OTHER = "other"


class IncomeType(str, Enum):
    """Supported income classifications."""
    W2 = "w2"
    CONTRACT_1099 = "1099"
    INVESTMENT = "investment"
    RENTAL = "rental"
    OTHER = "other"


class TransactionType(str, Enum):
    """A transaction either brings money in or takes it out."""
    INCOME = "income"
    EXPENSE = "expense"


# Columns owned by the data store. Callers can never set these.
MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at", "is_deleted"})


# =============================================================================
# FIELD RULES - reusable constrained types
# =============================================================================

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _check_date_string(v: str) -> str:
    if not _DATE_RE.match(v):
        raise ValueError("Date must be in YYYY-MM-DD format")
    return v


def _check_hex_color(v: str) -> str:
    if not _COLOR_RE.match(v):
        raise ValueError("Color must be a hex color (e.g., #3B82F6)")
    return v


def _check_positive(v: float) -> float:
    if v <= 0:
        raise ValueError("Amount must be positive")
    return v


def _check_non_negative(v: float) -> float:
    if v < 0:
        raise ValueError("Amount cannot be negative")
    return v


def _check_positive_id(v: int) -> int:
    if v <= 0:
        raise ValueError("ID must be a positive integer")
    return v


def _strip(v: Any) -> Any:
    if isinstance(v, str):
        return v.strip()
    return v


def _check_non_empty(v: str) -> str:
    if len(v) == 0:
        raise ValueError("This field is required")
    return v


def _list_to_json(v: Any) -> Any:
    """Accept a real list and store its JSON text."""
    if isinstance(v, (list, tuple)):
        return json.dumps(list(v))
    return v


def _check_json_array(v: str) -> str:
    try:
        parsed = json.loads(v)
    except (TypeError, ValueError):
        raise ValueError("Must be a valid JSON array string")
    if not isinstance(parsed, list):
        raise ValueError("Must be a valid JSON array string")
    return v


NonEmptyString = Annotated[str, BeforeValidator(_strip), AfterValidator(_check_non_empty)]
DateString = Annotated[str, AfterValidator(_check_date_string)]
HexColor = Annotated[str, AfterValidator(_check_hex_color)]
PositiveAmount = Annotated[float, AfterValidator(_check_positive)]
NonNegativeAmount = Annotated[float, AfterValidator(_check_non_negative)]
PositiveId = Annotated[int, AfterValidator(_check_positive_id)]
JsonArrayString = Annotated[
    str,
    BeforeValidator(_list_to_json),
    AfterValidator(_check_json_array),
]
Flag = Annotated[int, Field(ge=0, le=1)]


class EntitySchema(BaseModel):
    """
    Base for all insert schemas.

    Unknown fields are dropped, never passed through to storage.
    NaN and infinity are rejected for every float field.
    """
    model_config = ConfigDict(
        extra="ignore",
        allow_inf_nan=False,
    )


# =============================================================================
# ACCOUNTS & INCOME
# =============================================================================

class Account(EntitySchema):
    """A bank account the user tracks."""

    bank_name: NonEmptyString = Field(
        ...,
        description="Bank or institution name"
    )
    account_type: AccountType = Field(
        ...,
        description="Kind of account"
    )
    starting_balance: float = Field(
        ...,
        description="Balance at starting_balance_date (may be negative for credit)"
    )
    starting_balance_date: Optional[DateString] = Field(
        default=None,
        description="Date the starting balance was taken"
    )
    effective_from: Optional[DateString] = Field(
        default=None,
        description="When this account becomes active"
    )


class IncomeSource(EntitySchema):
    """A recurring source of income paid into an account."""

    source_name: NonEmptyString
    income_type: IncomeType
    amount: PositiveAmount
    account_id: PositiveId
    pay_dates: JsonArrayString = Field(
        ...,
        description="JSON array of pay days"
    )
    effective_from: Optional[DateString] = None


# =============================================================================
# BUDGET STRUCTURE
# =============================================================================

class Bucket(EntitySchema):
    """
    Top-level budget grouping.

    Buckets are pre-seeded by the initial migration; only their name and
    color are editable afterwards.
    """

    name: NonEmptyString
    bucket_key: NonEmptyString
    color: HexColor
    sort_order: int


class Category(EntitySchema):
    """A spending category inside a bucket."""

    name: NonEmptyString
    bucket_id: PositiveId
    effective_from: Optional[DateString] = None


class PlannedExpense(EntitySchema):
    """An expected expense with one or more due dates."""

    description: NonEmptyString
    amount: PositiveAmount
    bucket_id: PositiveId
    category_id: PositiveId
    account_id: PositiveId
    due_dates: JsonArrayString
    is_recurring: Flag = Field(
        default=0,
        description="1 if the expense repeats every month"
    )
    recurrence_end_date: Optional[DateString] = None
    effective_from: Optional[DateString] = None


class Goal(EntitySchema):
    """A savings goal."""

    name: NonEmptyString
    target_amount: PositiveAmount
    target_date: DateString
    funded_amount: NonNegativeAmount = Field(
        default=0,
        description="Amount already set aside (zero allowed)"
    )
    effective_from: Optional[DateString] = None


# =============================================================================
# LEDGER
# =============================================================================

def _missing_classification(data: Any) -> list[str]:
    """Classification fields an expense payload lacks (empty if not an expense)."""
    if not isinstance(data, Mapping) or data.get("type") != TransactionType.EXPENSE.value:
        return []
    return [name for name in ("bucket_id", "category_id") if data.get(name) is None]


class Transaction(EntitySchema):
    """
    A single ledger entry.

    Expenses must be classified (bucket + category); income need not be.
    """

    date: DateString
    type: TransactionType
    amount: PositiveAmount
    description: Optional[str] = None
    account_id: PositiveId
    bucket_id: Optional[PositiveId] = None
    category_id: Optional[PositiveId] = None
    income_source_id: Optional[PositiveId] = None

    @model_validator(mode='wrap')
    @classmethod
    def validate_expense_classification(
        cls,
        data: Any,
        handler: ValidatorFunctionWrapHandler,
    ) -> 'Transaction':
        """
        Expense transactions require bucket_id and category_id.

        Checked on the raw input so the rule is reported together with
        any field errors instead of only once every field is valid.
        """
        missing = _missing_classification(data)
        errors = []
        try:
            instance = handler(data)
        except ValidationError as e:
            if not missing:
                raise
            errors = [
                {key: err[key] for key in ("type", "loc", "input", "ctx") if key in err}
                for err in e.errors(include_url=False)
            ]

        if missing:
            errors.append({
                "type": PydanticCustomError(
                    "expense_classification",
                    "Expense transactions require bucket_id and category_id "
                    f"(missing: {', '.join(missing)})",
                ),
                "loc": (missing[0],),
                "input": data,
            })
            raise ValidationError.from_exception_data(cls.__name__, errors)

        return instance


# =============================================================================
# MISC
# =============================================================================

class PlanningScenario(EntitySchema):
    """A saved what-if planning state."""

    name: NonEmptyString
    data: str = Field(
        ...,
        description="JSON blob of scenario state"
    )


class ConfigEntry(EntitySchema):
    """A key/value user preference. Values are JSON text."""

    key: NonEmptyString
    value: str
