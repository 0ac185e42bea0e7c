"""
Shared fixtures.

Every test gets its own in-memory database with the bundled migrations
applied, so tests never see each other's rows.
"""

import pytest

from clarity_finance.events import EventBus
from clarity_finance.migrations import MigrationRunner
from clarity_finance.services.storage import MEMORY_PATH, DatabaseContext, SQLiteEntityStore


CHASE_CHECKING = {
    "bank_name": "Chase",
    "account_type": "checking",
    "starting_balance": 1000,
}


@pytest.fixture
def context():
    """Open in-memory context with the full schema."""
    ctx = DatabaseContext(MEMORY_PATH)
    ctx.open()
    MigrationRunner(ctx).run()
    yield ctx
    ctx.close()


@pytest.fixture
def bare_context():
    """Open in-memory context with no migrations applied."""
    ctx = DatabaseContext(MEMORY_PATH)
    ctx.open()
    yield ctx
    ctx.close()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(context, bus):
    return SQLiteEntityStore(context, events=bus)


@pytest.fixture
def account(store):
    """A stored checking account."""
    return store.insert("accounts", CHASE_CHECKING).unwrap()


@pytest.fixture
def recorder(bus):
    """
    Subscribe to events and collect what arrives.

    Usage:
        received = recorder("account:created")
    """
    def subscribe(*names):
        received = []
        for name in names:
            bus.on(name, received.append)
        return received
    return subscribe
