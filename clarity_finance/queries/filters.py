"""
Filter Predicate Builder

Translates a declarative filter mapping into a parameterized SQL predicate.

Grammar:
    {"column": literal}                  -> column = ?
    {"column": None}                     -> column IS NULL
    {"column": {"in": [a, b]}}           -> column IN (?, ?)
    {"column": {"gt"|"gte"|"lt"|"lte": x}} -> column > ? (etc.)
    {"column": {"between": [lo, hi]}}    -> column BETWEEN ? AND ?

DESIGN DECISION: The grammar is deliberately small. Entries combine with
AND only; there is no OR and no nesting. Any operator outside the fixed
set fails the WHOLE build, so a typo can never silently widen a query.

All values are bound parameters. Column names cannot be bound, so they
must be plain identifiers or the filter is rejected.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, NamedTuple, Optional

from clarity_finance.models.results import ErrorKind, Result


SUPPORTED_OPERATORS = ("in", "gt", "gte", "lt", "lte", "between")

COMPARISON_OPERATORS = {
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SCALAR_TYPES = (str, int, float, bool, Decimal, date, datetime)


class _Unset:
    """Marker for "no filter on this field"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


class Predicate(NamedTuple):
    """A WHERE fragment (without the keyword) and its bound values."""
    clause: str
    params: tuple

    @property
    def is_empty(self) -> bool:
        return not self.clause


EMPTY_PREDICATE = Predicate(clause="", params=())


def is_identifier(name: Any) -> bool:
    """Check that a name is safe to splice into SQL as a column."""
    return isinstance(name, str) and bool(_IDENTIFIER_RE.match(name))


def _invalid(message: str, **details: Any) -> Result:
    return Result.failure(ErrorKind.INVALID_FILTER, message, **details)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def _bind(value: Any) -> Any:
    """Convert a scalar into something sqlite3 binds natively."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _build_operator(
    field: str,
    operator: str,
    operand: Any,
    conditions: list[str],
    params: list[Any],
) -> Optional[Result]:
    """Append one operator condition. Returns a failure Result or None."""
    if operator not in SUPPORTED_OPERATORS:
        return _invalid(
            f"Unsupported filter operator: {operator}. "
            f"Supported: {', '.join(SUPPORTED_OPERATORS)}",
            field=field,
            operator=str(operator),
            supported=list(SUPPORTED_OPERATORS),
        )

    if operator == "in":
        if not isinstance(operand, (list, tuple)) or len(operand) == 0:
            return _invalid(
                f"'in' operator on '{field}' requires a non-empty list",
                field=field,
                operator=operator,
            )
        if not all(_is_scalar(v) or v is None for v in operand):
            return _invalid(
                f"'in' operator on '{field}' only accepts scalar values",
                field=field,
                operator=operator,
            )
        placeholders = ", ".join("?" for _ in operand)
        conditions.append(f"{field} IN ({placeholders})")
        params.extend(_bind(v) for v in operand)
        return None

    if operator == "between":
        if not isinstance(operand, (list, tuple)) or len(operand) != 2:
            return _invalid(
                f"'between' operator on '{field}' requires exactly 2 values",
                field=field,
                operator=operator,
            )
        if not all(_is_scalar(v) for v in operand):
            return _invalid(
                f"'between' operator on '{field}' only accepts scalar values",
                field=field,
                operator=operator,
            )
        # Caller order is kept; lower <= upper is not checked
        conditions.append(f"{field} BETWEEN ? AND ?")
        params.extend((_bind(operand[0]), _bind(operand[1])))
        return None

    if not _is_scalar(operand):
        return _invalid(
            f"'{operator}' operator on '{field}' requires a single scalar value",
            field=field,
            operator=operator,
        )
    conditions.append(f"{field} {COMPARISON_OPERATORS[operator]} ?")
    params.append(_bind(operand))
    return None


def build_predicate(filters: Optional[Mapping[str, Any]]) -> Result:
    """
    Build a parameterized predicate from a filter mapping.

    Args:
        filters: Column -> literal or {operator: operand}. None or empty
                 means "no filter".

    Returns:
        Result with a Predicate, or INVALID_FILTER describing the first
        offending entry (no partial predicate is ever returned)
    """
    if not filters:
        return Result.success(EMPTY_PREDICATE)

    if not isinstance(filters, Mapping):
        return _invalid(
            f"Filters must be a mapping, got {type(filters).__name__}"
        )

    conditions: list[str] = []
    params: list[Any] = []

    for field, value in filters.items():
        if value is UNSET:
            continue

        if not is_identifier(field):
            return _invalid(f"Invalid filter field name: {field!r}", field=str(field))

        if value is None:
            conditions.append(f"{field} IS NULL")
            continue

        if isinstance(value, Mapping):
            if not value:
                return _invalid(f"Operator mapping for '{field}' is empty", field=field)
            for operator, operand in value.items():
                failure = _build_operator(field, operator, operand, conditions, params)
                if failure is not None:
                    return failure
            continue

        if not _is_scalar(value):
            return _invalid(
                f"Filter value for '{field}' must be a scalar or an operator mapping",
                field=field,
            )

        conditions.append(f"{field} = ?")
        params.append(_bind(value))

    if not conditions:
        return Result.success(EMPTY_PREDICATE)

    return Result.success(Predicate(clause=" AND ".join(conditions), params=tuple(params)))
