"""
Event Models for Clarity Finance

Notifications published on the event bus after a mutation commits.
Feature modules subscribe to these instead of importing each other.

DESIGN DECISION: Events describe what already happened. They are sent
after the commit, and a failed delivery never undoes the change.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from clarity_finance.models.entities import EntityType


class MutationAction(str, Enum):
    """What a mutation did to a record."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


# Events known up front. Modules may register more at runtime.
CATALOGED_EVENTS = frozenset({
    # Core
    "database:initialized",
    "config:changed",

    # Entity lifecycle
    *(
        f"{entity.event_prefix}:{action.value}"
        for entity in EntityType
        for action in MutationAction
    ),

    # Goals
    "goal:funded",

    # Errors
    "error:validation",
    "error:database",
})


class EventMessage(BaseModel):
    """
    A single bus notification.

    `name` is the routing key ('account:created'); the payload is
    event-specific.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    emitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event was emitted (UTC)"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Routing key, '<subject>:<action>'"
    )
    entity_type: Optional[EntityType] = Field(
        default=None,
        description="Entity the event is about, if any"
    )
    action: Optional[MutationAction] = Field(
        default=None,
        description="Mutation that triggered the event, if any"
    )
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific data"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "emitted_at": self.emitted_at.isoformat(),
            "event_name": self.name,
            "entity_type": self.entity_type.value if self.entity_type else None,
            "action": self.action.value if self.action else None,
            "payload": self.payload,
        }


class EventMessageBuilder:
    """
    Helper class to build event messages with common patterns.

    Usage:
        message = EventMessageBuilder.entity_mutated(
            EntityType.ACCOUNTS, MutationAction.CREATED, record
        )
    """

    @staticmethod
    def entity_mutated(
        entity_type: EntityType,
        action: MutationAction,
        payload: dict[str, Any],
    ) -> EventMessage:
        return EventMessage(
            name=f"{entity_type.event_prefix}:{action.value}",
            entity_type=entity_type,
            action=action,
            payload=payload,
        )

    @staticmethod
    def config_changed(key: str, value: Any, previous_value: Any) -> EventMessage:
        return EventMessage(
            name="config:changed",
            entity_type=EntityType.CONFIG,
            action=MutationAction.UPDATED,
            payload={"key": key, "value": value, "previous_value": previous_value},
        )

    @staticmethod
    def database_initialized(migrations_run: int) -> EventMessage:
        return EventMessage(
            name="database:initialized",
            payload={"migrations_run": migrations_run},
        )
