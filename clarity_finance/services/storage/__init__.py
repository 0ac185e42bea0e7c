"""
Storage Services Package

Provides the abstract entity store contract, the SQLite implementation,
and the database context that owns the connection.
"""

from clarity_finance.services.storage.connection import (
    MEMORY_PATH,
    ContextClosedError,
    DatabaseContext,
    UnitOfWork,
    format_timestamp,
)
from clarity_finance.services.storage.interface import (
    EntityKey,
    EntityStoreInterface,
)
from clarity_finance.services.storage.sqlite_store import (
    SQLiteEntityStore,
    row_to_record,
)

__all__ = [
    # Connection lifecycle
    "MEMORY_PATH",
    "ContextClosedError",
    "DatabaseContext",
    "UnitOfWork",
    "format_timestamp",
    # Interfaces
    "EntityKey",
    "EntityStoreInterface",
    # SQLite implementation
    "SQLiteEntityStore",
    "row_to_record",
]
