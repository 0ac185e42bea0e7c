"""Query building package."""

from clarity_finance.queries.filters import (
    EMPTY_PREDICATE,
    SUPPORTED_OPERATORS,
    UNSET,
    Predicate,
    build_predicate,
    is_identifier,
)

__all__ = [
    "EMPTY_PREDICATE",
    "SUPPORTED_OPERATORS",
    "UNSET",
    "Predicate",
    "build_predicate",
    "is_identifier",
]
