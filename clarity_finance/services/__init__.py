"""Services package."""

from clarity_finance.services.config_store import ConfigStore
from clarity_finance.services.storage import (
    ContextClosedError,
    DatabaseContext,
    EntityStoreInterface,
    SQLiteEntityStore,
    UnitOfWork,
)

__all__ = [
    # Config
    "ConfigStore",
    # Storage services
    "ContextClosedError",
    "DatabaseContext",
    "EntityStoreInterface",
    "SQLiteEntityStore",
    "UnitOfWork",
]
