"""
Tests for the in-process event bus.
"""

import pytest

from clarity_finance.events import EventBus
from clarity_finance.models.entities import EntityType
from clarity_finance.models.events import EventMessage, MutationAction


class TestSubscription:
    """on / off / clear / listener_count."""

    def test_emit_reaches_listener(self):
        """Test a subscribed callback receives the message."""
        bus = EventBus()
        received = []
        bus.on("goal:funded", received.append)

        delivered = bus.emit("goal:funded", {"id": 1, "amount": 250})

        assert delivered == 1
        assert isinstance(received[0], EventMessage)
        assert received[0].payload == {"id": 1, "amount": 250}

    def test_emit_with_entity_and_action(self):
        """Test string entity/action values are coerced."""
        bus = EventBus()
        received = []
        bus.on("account:created", received.append)

        bus.emit("account:created", {"id": 3}, entity_type="accounts", action="created")
        assert received[0].entity_type == EntityType.ACCOUNTS
        assert received[0].action == MutationAction.CREATED

    def test_no_listeners(self):
        """Test emitting with nobody listening is fine."""
        assert EventBus().emit("database:initialized") == 0

    def test_off(self):
        """Test unsubscribing stops delivery."""
        bus = EventBus()
        received = []
        bus.on("account:updated", received.append)
        bus.off("account:updated", received.append)

        bus.emit("account:updated", {"id": 1})
        assert received == []
        assert bus.listener_count("account:updated") == 0

    def test_off_unknown_callback(self):
        """Test removing a callback that was never added."""
        EventBus().off("account:updated", print)

    def test_duplicate_subscription_ignored(self):
        """Test the same callback is only called once."""
        bus = EventBus()
        received = []
        bus.on("goal:funded", received.append)
        bus.on("goal:funded", received.append)
        assert bus.listener_count("goal:funded") == 1

    def test_clear(self):
        """Test clearing one event or all events."""
        bus = EventBus()
        bus.on("account:created", lambda m: None)
        bus.on("goal:funded", lambda m: None)

        bus.clear("account:created")
        assert bus.listener_count("account:created") == 0
        assert bus.listener_count("goal:funded") == 1

        bus.clear()
        assert bus.listener_count("goal:funded") == 0

    def test_non_callable_rejected(self):
        """Test on() requires a callable."""
        with pytest.raises(TypeError):
            EventBus().on("goal:funded", "not a function")


class TestDelivery:
    """Failure isolation and the catalog."""

    def test_failing_listener_isolated(self):
        """Test one broken listener does not stop the others."""
        bus = EventBus()
        received = []

        def broken(message):
            raise ValueError("boom")

        bus.on("transaction:created", broken)
        bus.on("transaction:created", received.append)

        delivered = bus.emit("transaction:created", {"id": 9})
        assert delivered == 1
        assert len(received) == 1

    def test_listener_may_unsubscribe_itself(self):
        """Test off() inside a callback during delivery."""
        bus = EventBus()
        calls = []

        def once(message):
            calls.append(message.name)
            bus.off("goal:funded", once)

        bus.on("goal:funded", once)
        bus.emit("goal:funded")
        bus.emit("goal:funded")
        assert calls == ["goal:funded"]

    def test_uncataloged_event_still_delivered(self):
        """Test unknown names are delivered (and only warned about)."""
        bus = EventBus()
        received = []
        bus.on("budget:recalculated", received.append)

        assert not bus.is_registered("budget:recalculated")
        assert bus.emit("budget:recalculated") == 1
        assert len(received) == 1

    def test_register_event(self):
        """Test modules can extend the catalog."""
        bus = EventBus()
        bus.register_event("budget:recalculated")
        assert bus.is_registered("budget:recalculated")
        assert bus.is_registered("account:created")

    def test_debug_mode(self):
        """Test debug mode can be toggled without affecting delivery."""
        bus = EventBus(debug_mode=True)
        received = []
        bus.on("config:changed", received.append)
        bus.emit("config:changed", {"key": "userName"})

        bus.set_debug_mode(False)
        bus.emit("config:changed", {"key": "userName"})
        assert len(received) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
