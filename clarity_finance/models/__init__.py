"""
Data Models Package

This package contains all Pydantic models used in the Clarity Finance data layer.
All data flowing into storage must conform to these schemas.
"""

from clarity_finance.models.entities import (
    MANAGED_FIELDS,
    Account,
    AccountType,
    Bucket,
    Category,
    ConfigEntry,
    EntitySchema,
    EntityType,
    Goal,
    IncomeSource,
    IncomeType,
    PlannedExpense,
    PlanningScenario,
    Transaction,
    TransactionType,
)
from clarity_finance.models.events import (
    CATALOGED_EVENTS,
    EventMessage,
    EventMessageBuilder,
    MutationAction,
)
from clarity_finance.models.results import (
    ErrorKind,
    Result,
    ResultError,
    StoreError,
)

__all__ = [
    # Entity models
    "MANAGED_FIELDS",
    "Account",
    "AccountType",
    "Bucket",
    "Category",
    "ConfigEntry",
    "EntitySchema",
    "EntityType",
    "Goal",
    "IncomeSource",
    "IncomeType",
    "PlannedExpense",
    "PlanningScenario",
    "Transaction",
    "TransactionType",
    # Event models
    "CATALOGED_EVENTS",
    "EventMessage",
    "EventMessageBuilder",
    "MutationAction",
    # Result models
    "ErrorKind",
    "Result",
    "ResultError",
    "StoreError",
]
