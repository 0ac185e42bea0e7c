"""
Schema Registry & Validator

Every write path goes through `SchemaRegistry.validate()` before the data
store touches storage.

DESIGN DECISION: Each entity has ONE schema definition (the insert model).
The update view is derived from it mechanically:

- every field becomes optional (default None)
- per-field rules (types, sign checks, formats, enums) are kept
- only the fields the caller actually supplied are returned
- multi-field refinements (model validators) are NOT carried over

The last point is a known gap: a partial update can produce a combination
an insert would reject (e.g. switching a transaction to "expense" without
classifying it). Re-validating the merged record would close it, but would
also make legacy rows uneditable, so it is left as-is and documented.

IMPORTANT: validate() NEVER raises. Unknown entity types and operations
are VALIDATION_ERROR results, just like field failures, and every field
failure is reported at once rather than stopping at the first.
"""

from enum import Enum
from typing import Annotated, Any, Mapping, NamedTuple, Optional, Union

from pydantic import BaseModel, Field, ValidationError, create_model

from clarity_finance.models.entities import (
    MANAGED_FIELDS,
    Account,
    Bucket,
    Category,
    ConfigEntry,
    EntityType,
    Goal,
    IncomeSource,
    PlannedExpense,
    PlanningScenario,
    Transaction,
)
from clarity_finance.models.results import ErrorKind, Result


class Operation(str, Enum):
    """Mutations that have a schema."""
    INSERT = "insert"
    UPDATE = "update"


class SchemaPair(NamedTuple):
    """Insert and update views of one entity."""
    insert: type[BaseModel]
    update: type[BaseModel]


def derive_update_model(
    model: type[BaseModel],
    fields: Optional[tuple[str, ...]] = None,
) -> type[BaseModel]:
    """
    Build the partial-update view of an insert model.

    Args:
        model: The insert schema
        fields: Restrict the update view to these fields (default: all)

    Returns:
        A new model where every kept field is optional
    """
    definitions: dict[str, Any] = {}

    for name, info in model.model_fields.items():
        if fields is not None and name not in fields:
            continue

        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]

        definitions[name] = (
            annotation,
            Field(default=None, description=info.description),
        )

    return create_model(
        f"{model.__name__}Update",
        __config__=model.model_config,
        **definitions,
    )


def _pair(model: type[BaseModel], update_fields: Optional[tuple[str, ...]] = None) -> SchemaPair:
    return SchemaPair(insert=model, update=derive_update_model(model, update_fields))


DEFAULT_SCHEMAS: dict[EntityType, SchemaPair] = {
    EntityType.ACCOUNTS: _pair(Account),
    EntityType.INCOME_SOURCES: _pair(IncomeSource),
    # Buckets are seeded; only name and color can change
    EntityType.BUCKETS: _pair(Bucket, ("name", "color")),
    EntityType.CATEGORIES: _pair(Category),
    EntityType.PLANNED_EXPENSES: _pair(PlannedExpense),
    EntityType.GOALS: _pair(Goal),
    EntityType.TRANSACTIONS: _pair(Transaction),
    EntityType.PLANNING_SCENARIOS: _pair(PlanningScenario),
    EntityType.CONFIG: _pair(ConfigEntry),
}


def format_errors(exc: ValidationError) -> list[str]:
    """
    Turn pydantic errors into 'path: message' strings.

    Nested paths are dotted. Value errors raised by our own validators
    lose pydantic's "Value error, " prefix.
    """
    messages = []
    for err in exc.errors():
        if err.get("type") == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err.get("msg", "Invalid value")
        path = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{path}: {message}" if path else message)
    return messages


class SchemaRegistry:
    """
    Typed registry of per-entity schemas.

    Lookups accept an EntityType or its string value and fail closed:
    anything not registered is a VALIDATION_ERROR.
    """

    def __init__(self, schemas: Optional[Mapping[EntityType, SchemaPair]] = None):
        self._schemas: dict[EntityType, SchemaPair] = dict(schemas or DEFAULT_SCHEMAS)

    @property
    def entity_types(self) -> list[EntityType]:
        return list(self._schemas)

    def resolve(self, entity_type: Union[EntityType, str]) -> Result:
        """Resolve an entity type key to a registered EntityType."""
        try:
            resolved = EntityType(entity_type)
        except (ValueError, TypeError):
            return Result.failure(
                ErrorKind.VALIDATION_ERROR,
                f"Unknown entity type: {entity_type}",
                entity_type=str(entity_type),
            )

        if resolved not in self._schemas:
            return Result.failure(
                ErrorKind.VALIDATION_ERROR,
                f"Unknown entity type: {resolved.value}",
                entity_type=resolved.value,
            )
        return Result.success(resolved)

    def schema_for(
        self,
        entity_type: Union[EntityType, str],
        operation: Union[Operation, str],
    ) -> Result:
        """Look up the model for an entity/operation pair."""
        resolved = self.resolve(entity_type)
        if not resolved.ok:
            return resolved

        try:
            op = Operation(operation)
        except (ValueError, TypeError):
            return Result.failure(
                ErrorKind.VALIDATION_ERROR,
                f"Unknown operation: {operation}",
                operation=str(operation),
            )

        pair = self._schemas[resolved.data]
        return Result.success(pair.insert if op == Operation.INSERT else pair.update)

    def validate(
        self,
        entity_type: Union[EntityType, str],
        operation: Union[Operation, str],
        data: Any,
    ) -> Result:
        """
        Validate and normalize a record for a mutation.

        Args:
            entity_type: Entity being written
            operation: 'insert' or 'update'
            data: Caller-supplied field mapping

        Returns:
            Result with the normalized record (declared fields only) or a
            VALIDATION_ERROR aggregating every violated field
        """
        schema = self.schema_for(entity_type, operation)
        if not schema.ok:
            return schema

        if not isinstance(data, Mapping):
            return Result.failure(
                ErrorKind.VALIDATION_ERROR,
                f"Record must be a mapping, got {type(data).__name__}",
            )

        model: type[BaseModel] = schema.data
        payload = {k: v for k, v in data.items() if k not in MANAGED_FIELDS}

        try:
            instance = model.model_validate(payload)
        except ValidationError as e:
            errors = format_errors(e)
            return Result.failure(
                ErrorKind.VALIDATION_ERROR,
                "; ".join(errors),
                errors=errors,
            )

        is_update = Operation(operation) == Operation.UPDATE
        return Result.success(
            instance.model_dump(mode="json", exclude_unset=is_update)
        )


DEFAULT_REGISTRY = SchemaRegistry()


def validate(
    entity_type: Union[EntityType, str],
    operation: Union[Operation, str],
    data: Any,
) -> Result:
    """Validate against the default registry."""
    return DEFAULT_REGISTRY.validate(entity_type, operation, data)
