"""
SQLite Entity Store

The only way feature code reads or writes entity tables.

Every write path:
1. Resolves the entity type (unknown -> VALIDATION_ERROR)
2. Validates through the schema registry BEFORE any storage access
3. Stamps store-managed columns (created_at / updated_at / is_deleted)
4. Commits inside a unit of work
5. Publishes a notification on the event bus (best effort)

Every read path excludes soft-deleted rows unless explicitly asked.

DESIGN DECISION: This class contains NO entity-specific logic. Table names
come from the closed EntityType enum, column names from validated schema
output or identifier-checked filter keys, and every value is bound.

IMPORTANT: No method raises. sqlite3 errors (constraint violations, a
closed connection, ...) come back as DATABASE_ERROR results carrying the
driver message.
"""

import sqlite3
from typing import Any, Mapping, Optional, Sequence

from clarity_finance.events import EventBus
from clarity_finance.log import get_logger
from clarity_finance.models.entities import EntityType
from clarity_finance.models.events import EventMessageBuilder, MutationAction
from clarity_finance.models.results import ErrorKind, Result
from clarity_finance.queries import build_predicate, is_identifier
from clarity_finance.services.storage.connection import DatabaseContext
from clarity_finance.services.storage.interface import EntityKey, EntityStoreInterface
from clarity_finance.validation import DEFAULT_REGISTRY, Operation, SchemaRegistry


SOFT_DELETE_CONDITION = "is_deleted = 0"


def row_to_record(row: sqlite3.Row) -> dict[str, Any]:
    """Convert a row to a plain dict, surfacing is_deleted as a bool."""
    record = dict(row)
    if "is_deleted" in record and record["is_deleted"] is not None:
        record["is_deleted"] = bool(record["is_deleted"])
    return record


class SQLiteEntityStore(EntityStoreInterface):
    """
    SQLite implementation of the generic entity store.

    Records are plain dicts keyed by column name.
    """

    def __init__(
        self,
        context: DatabaseContext,
        registry: Optional[SchemaRegistry] = None,
        events: Optional[EventBus] = None,
    ):
        """
        Initialize the store.

        Args:
            context: Open database context (owns the connection)
            registry: Schema registry for validation (default schemas if None)
            events: Bus to notify after successful mutations. If None,
                    nothing is published.
        """
        self._context = context
        self._registry = registry or DEFAULT_REGISTRY
        self._events = events
        self._logger = get_logger(__name__)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _database_error(self, action: str, error: Exception, **context: Any) -> Result:
        self._logger.warning("database_error", action=action, error=str(error), **context)
        return Result.failure(
            ErrorKind.DATABASE_ERROR,
            f"{action} failed: {error}",
            action=action,
        )

    def _not_found(self, entity: EntityType, record_id: Any) -> Result:
        return Result.failure(
            ErrorKind.NOT_FOUND,
            f"{entity.value} with id {record_id} not found",
            entity_type=entity.value,
            id=record_id,
        )

    def _notify(self, entity: EntityType, action: MutationAction, payload: dict) -> None:
        """Publish after commit. Never affects the caller's result."""
        if self._events is None:
            return
        try:
            self._events.publish(
                EventMessageBuilder.entity_mutated(entity, action, payload)
            )
        except Exception as e:
            self._logger.error(
                "event_publish_failed",
                entity_type=entity.value,
                action=action.value,
                error=str(e),
            )

    def _fetch_one(
        self,
        entity: EntityType,
        record_id: Any,
        include_deleted: bool,
    ) -> Optional[dict[str, Any]]:
        sql = f"SELECT * FROM {entity.table} WHERE id = ?"
        if not include_deleted:
            sql += f" AND {SOFT_DELETE_CONDITION}"
        row = self._context.connection.execute(sql, (record_id,)).fetchone()
        return row_to_record(row) if row is not None else None

    # =========================================================================
    # Reads
    # =========================================================================

    def get_by_id(
        self,
        entity_type: EntityKey,
        record_id: int,
        include_deleted: bool = False,
    ) -> Result:
        resolved = self._registry.resolve(entity_type)
        if not resolved.ok:
            return resolved
        entity: EntityType = resolved.data

        try:
            record = self._fetch_one(entity, record_id, include_deleted)
        except sqlite3.Error as e:
            return self._database_error("Query", e, entity_type=entity.value)

        if record is None:
            return self._not_found(entity, record_id)
        return Result.success(record)

    def query(
        self,
        entity_type: EntityKey,
        filters: Optional[Mapping[str, Any]] = None,
        include_deleted: bool = False,
        order_by: Optional[str] = None,
        order: str = "asc",
        limit: Optional[int] = None,
    ) -> Result:
        resolved = self._registry.resolve(entity_type)
        if not resolved.ok:
            return resolved
        entity: EntityType = resolved.data

        predicate = build_predicate(filters)
        if not predicate.ok:
            return predicate

        # Options are checked before touching storage, like filters
        if order_by is not None and not is_identifier(order_by):
            return Result.failure(
                ErrorKind.INVALID_FILTER,
                f"Invalid order_by column: {order_by!r}",
            )
        direction = str(order).lower()
        if direction not in ("asc", "desc"):
            return Result.failure(
                ErrorKind.INVALID_FILTER,
                f"Invalid order: {order!r}. Supported: asc, desc",
            )
        if limit is not None and (
            isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0
        ):
            return Result.failure(
                ErrorKind.INVALID_FILTER,
                f"Invalid limit: {limit!r}. Must be a positive integer",
            )

        conditions = []
        params = list(predicate.data.params)
        if not predicate.data.is_empty:
            conditions.append(predicate.data.clause)
        if not include_deleted:
            conditions.append(SOFT_DELETE_CONDITION)

        sql = f"SELECT * FROM {entity.table}"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        if order_by is not None:
            sql += f" ORDER BY {order_by} {direction.upper()}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            rows = self._context.connection.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            return self._database_error("Query", e, entity_type=entity.value)

        return Result.success([row_to_record(row) for row in rows])

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, entity_type: EntityKey, record: Mapping[str, Any]) -> Result:
        resolved = self._registry.resolve(entity_type)
        if not resolved.ok:
            return resolved
        entity: EntityType = resolved.data

        validation = self._registry.validate(entity, Operation.INSERT, record)
        if not validation.ok:
            self._logger.warning(
                "validation_failed",
                entity_type=entity.value,
                operation="insert",
                message=validation.error.message,
            )
            return validation

        try:
            timestamp = self._context.now()
            row = {
                **validation.data,
                "created_at": timestamp,
                "updated_at": timestamp,
                "is_deleted": 0,
            }
            columns = list(row)
            placeholders = ", ".join("?" for _ in columns)
            sql = (
                f"INSERT INTO {entity.table} ({', '.join(columns)}) "
                f"VALUES ({placeholders})"
            )

            with self._context.transaction():
                cursor = self._context.connection.execute(sql, [row[c] for c in columns])
                new_id = cursor.lastrowid

            stored = self._fetch_one(entity, new_id, include_deleted=True)
        except sqlite3.Error as e:
            return self._database_error("Insert", e, entity_type=entity.value)

        self._logger.debug("record_inserted", entity_type=entity.value, id=new_id)
        self._notify(entity, MutationAction.CREATED, stored)
        return Result.success(stored)

    def update(
        self,
        entity_type: EntityKey,
        record_id: int,
        changes: Mapping[str, Any],
    ) -> Result:
        existing = self.get_by_id(entity_type, record_id)
        if not existing.ok:
            return existing
        entity: EntityType = self._registry.resolve(entity_type).data

        validation = self._registry.validate(entity, Operation.UPDATE, changes)
        if not validation.ok:
            self._logger.warning(
                "validation_failed",
                entity_type=entity.value,
                operation="update",
                id=record_id,
                message=validation.error.message,
            )
            return validation

        try:
            assignments = {**validation.data, "updated_at": self._context.now()}
            set_clause = ", ".join(f"{column} = ?" for column in assignments)
            sql = f"UPDATE {entity.table} SET {set_clause} WHERE id = ?"

            with self._context.transaction():
                self._context.connection.execute(
                    sql, [*assignments.values(), record_id]
                )
        except sqlite3.Error as e:
            return self._database_error("Update", e, entity_type=entity.value, id=record_id)

        # Read-after-write: return what storage holds, not the input
        current = self.get_by_id(entity, record_id)
        if current.ok:
            self._logger.debug(
                "record_updated",
                entity_type=entity.value,
                id=record_id,
                fields=sorted(validation.data),
            )
            self._notify(entity, MutationAction.UPDATED, current.data)
        return current

    def soft_delete(self, entity_type: EntityKey, record_id: int) -> Result:
        existing = self.get_by_id(entity_type, record_id)
        if not existing.ok:
            return existing
        entity: EntityType = self._registry.resolve(entity_type).data

        try:
            with self._context.transaction():
                self._context.connection.execute(
                    f"UPDATE {entity.table} SET is_deleted = 1, updated_at = ? WHERE id = ?",
                    (self._context.now(), record_id),
                )
        except sqlite3.Error as e:
            return self._database_error("Delete", e, entity_type=entity.value, id=record_id)

        acknowledgement = {"id": record_id, "deleted": True}
        self._logger.debug("record_deleted", entity_type=entity.value, id=record_id)
        self._notify(entity, MutationAction.DELETED, acknowledgement)
        return Result.success(acknowledgement)

    # =========================================================================
    # Escape hatch
    # =========================================================================

    def raw_execute(self, statement: str, params: Sequence[Any] = ()) -> Result:
        try:
            cursor = self._context.connection.execute(statement, tuple(params))
            if cursor.description is not None:
                return Result.success([row_to_record(row) for row in cursor.fetchall()])
            return Result.success({
                "rowcount": cursor.rowcount,
                "lastrowid": cursor.lastrowid,
            })
        except sqlite3.Error as e:
            return self._database_error("Execute", e)
