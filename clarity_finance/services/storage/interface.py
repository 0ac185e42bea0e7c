"""
Abstract Data Store Interface

DESIGN DECISION: We define an abstract interface for entity storage.
This allows us to:
1. Keep feature modules decoupled from SQLite
2. Swap in a fake store for tests of code built on top of this one
3. Make the contract (validation gate, soft delete, Result returns)
   explicit in one place

The interface is intentionally generic - there is no per-entity method.
Entity-specific behavior lives in the schema registry, not here.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence, Union

from clarity_finance.models.entities import EntityType
from clarity_finance.models.results import Result


EntityKey = Union[EntityType, str]


class EntityStoreInterface(ABC):
    """
    Generic validated data-access contract.

    Every method returns a Result and never raises.
    """

    @abstractmethod
    def insert(self, entity_type: EntityKey, record: Mapping[str, Any]) -> Result:
        """
        Validate and persist a new record.

        Args:
            entity_type: Entity being created
            record: Domain fields; store-managed fields are ignored

        Returns:
            Result with the complete stored record including its new id.
            VALIDATION_ERROR leaves storage untouched.
        """
        pass

    @abstractmethod
    def update(
        self,
        entity_type: EntityKey,
        record_id: int,
        changes: Mapping[str, Any],
    ) -> Result:
        """
        Validate and apply a partial change to a live record.

        Returns:
            Result with the full record as re-read after the write.
            NOT_FOUND if the record is missing or soft-deleted.
        """
        pass

    @abstractmethod
    def soft_delete(self, entity_type: EntityKey, record_id: int) -> Result:
        """
        Flag a live record as deleted.

        Returns:
            Result with {"id": record_id, "deleted": True}.
            NOT_FOUND if the record is missing or already deleted.
        """
        pass

    @abstractmethod
    def get_by_id(
        self,
        entity_type: EntityKey,
        record_id: int,
        include_deleted: bool = False,
    ) -> Result:
        """
        Fetch a single record.

        Returns:
            Result with the record, or NOT_FOUND (soft-deleted rows count
            as missing unless include_deleted is set)
        """
        pass

    @abstractmethod
    def query(
        self,
        entity_type: EntityKey,
        filters: Optional[Mapping[str, Any]] = None,
        include_deleted: bool = False,
        order_by: Optional[str] = None,
        order: str = "asc",
        limit: Optional[int] = None,
    ) -> Result:
        """
        Fetch records matching a filter mapping.

        Returns:
            Result with a (possibly empty) list of records, or
            INVALID_FILTER for a malformed filter/option
        """
        pass

    @abstractmethod
    def raw_execute(self, statement: str, params: Sequence[Any] = ()) -> Result:
        """
        Execute a raw SQL statement.

        Reserved for migrations and table bootstrap. Bypasses validation.
        """
        pass
