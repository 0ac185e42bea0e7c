"""
Result and Error Models

Every public data-layer operation returns a Result instead of raising.

DESIGN DECISION: Error kinds form a closed enum. Callers branch on
`result.error.kind`, never on message text. Caller-correctable kinds
(bad input) are kept distinct from storage faults so that calling code
can tell "fix your input" apart from "try again later".
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ErrorKind(str, Enum):
    """
    The complete set of failure kinds.

    VALIDATION_ERROR and INVALID_FILTER are bad input.
    NOT_FOUND is a missing or soft-deleted target.
    DATABASE_ERROR is an environmental/storage fault.
    """
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FILTER = "INVALID_FILTER"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"


class StoreError(BaseModel):
    """A tagged failure with a human-readable message."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind = Field(
        ...,
        description="Which kind of failure this is"
    )
    message: str = Field(
        ...,
        description="Human-readable description"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Optional structured context (field errors, operator, ...)"
    )

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class ResultError(Exception):
    """Raised by Result.unwrap() on a failed result."""

    def __init__(self, error: StoreError):
        super().__init__(str(error))
        self.error = error


class Result(BaseModel):
    """
    Success/failure value returned by every public operation.

    Exactly one of `data` (on success) or `error` (on failure) is meaningful.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: bool
    data: Any = None
    error: Optional[StoreError] = None

    @model_validator(mode='after')
    def check_consistency(self) -> 'Result':
        if self.ok and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.ok and self.error is None:
            raise ValueError("A failed result must carry an error")
        return self

    @classmethod
    def success(cls, data: Any = None) -> 'Result':
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **details: Any) -> 'Result':
        return cls(
            ok=False,
            error=StoreError(kind=kind, message=message, details=details),
        )

    @property
    def kind(self) -> Optional[ErrorKind]:
        """Error kind, or None on success."""
        return self.error.kind if self.error else None

    @property
    def is_retryable(self) -> bool:
        """Only storage faults may succeed on retry; bad input never will."""
        return self.error is not None and self.error.kind == ErrorKind.DATABASE_ERROR

    def unwrap(self) -> Any:
        """Return the data or raise ResultError."""
        if not self.ok:
            raise ResultError(self.error)
        return self.data
