"""Event bus package."""

from clarity_finance.events.bus import EventBus, Listener

__all__ = ["EventBus", "Listener"]
