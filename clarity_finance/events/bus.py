"""
Event Bus

Simple synchronous pub/sub used to tell feature modules that something
changed, without them importing each other.

DESIGN DECISION: The bus never fails its caller.
- A listener that raises is logged and the remaining listeners still run
- Emitting an event that is not in the catalog is allowed, but logged as
  a warning so the catalog stays honest

Every emit is also logged locally (at debug level, or info in debug mode).
"""

from typing import Any, Callable, Optional, Union

from clarity_finance.log import get_logger
from clarity_finance.models.entities import EntityType
from clarity_finance.models.events import (
    CATALOGED_EVENTS,
    EventMessage,
    MutationAction,
)


Listener = Callable[[EventMessage], Any]


class EventBus:
    """
    In-process event bus.

    Listeners receive the full EventMessage; `message.payload` holds the
    event data.
    """

    def __init__(self, debug_mode: bool = False):
        """
        Initialize the bus.

        Args:
            debug_mode: Log every emit and subscription at info level
        """
        self._listeners: dict[str, list[Listener]] = {}
        self._catalog: set[str] = set(CATALOGED_EVENTS)
        self._debug_mode = debug_mode
        self._logger = get_logger(__name__)

    def set_debug_mode(self, enabled: bool) -> None:
        self._debug_mode = enabled

    def _trace(self, event: str, **kw: Any) -> None:
        if self._debug_mode:
            self._logger.info(event, **kw)
        else:
            self._logger.debug(event, **kw)

    def on(self, name: str, callback: Listener) -> None:
        """Subscribe a callback to an event name."""
        if not callable(callback):
            raise TypeError("on() requires a callable callback")
        listeners = self._listeners.setdefault(name, [])
        if callback not in listeners:
            listeners.append(callback)
        self._trace("event_subscribed", event_name=name)

    def off(self, name: str, callback: Listener) -> None:
        """Unsubscribe a callback. Unknown callbacks are ignored."""
        listeners = self._listeners.get(name)
        if not listeners:
            return
        if callback in listeners:
            listeners.remove(callback)
        if not listeners:
            del self._listeners[name]
        self._trace("event_unsubscribed", event_name=name)

    def clear(self, name: Optional[str] = None) -> None:
        """Remove listeners for one event, or for all events."""
        if name is None:
            self._listeners.clear()
        else:
            self._listeners.pop(name, None)

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, ()))

    def register_event(self, name: str) -> None:
        """Add a module-specific event to the catalog."""
        self._catalog.add(name)

    def is_registered(self, name: str) -> bool:
        return name in self._catalog

    def publish(self, message: EventMessage) -> int:
        """
        Deliver a message to every listener of its name.

        Returns:
            Number of listeners that handled the message without raising
        """
        if message.name not in self._catalog:
            self._logger.warning("uncataloged_event", event_name=message.name)

        self._trace("event_emitted", **message.to_log_dict())

        delivered = 0
        # Copy so listeners may unsubscribe themselves while being called
        for callback in list(self._listeners.get(message.name, ())):
            try:
                callback(message)
                delivered += 1
            except Exception as e:
                self._logger.error(
                    "event_listener_failed",
                    event_name=message.name,
                    event_id=str(message.event_id),
                    error=str(e),
                )
        return delivered

    def emit(
        self,
        name: str,
        payload: Optional[dict[str, Any]] = None,
        entity_type: Optional[Union[EntityType, str]] = None,
        action: Optional[Union[MutationAction, str]] = None,
    ) -> int:
        """Build an EventMessage and publish it."""
        message = EventMessage(
            name=name,
            payload=payload or {},
            entity_type=entity_type,
            action=action,
        )
        return self.publish(message)
