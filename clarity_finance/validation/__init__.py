"""Schema validation package."""

from clarity_finance.validation.validator import (
    DEFAULT_REGISTRY,
    DEFAULT_SCHEMAS,
    Operation,
    SchemaPair,
    SchemaRegistry,
    derive_update_model,
    format_errors,
    validate,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "DEFAULT_SCHEMAS",
    "Operation",
    "SchemaPair",
    "SchemaRegistry",
    "derive_update_model",
    "format_errors",
    "validate",
]
