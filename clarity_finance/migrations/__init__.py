"""
Schema Migrations Package

Numbered units in `versions/` are applied in order by MigrationRunner and
recorded in the `_migrations` ledger table.
"""

from clarity_finance.migrations.runner import (
    DEFAULT_PACKAGE,
    LEDGER_TABLE,
    Migration,
    MigrationError,
    MigrationRunner,
    MigrationState,
    MigrationStatus,
    check_order,
    discover_migrations,
)

__all__ = [
    "DEFAULT_PACKAGE",
    "LEDGER_TABLE",
    "Migration",
    "MigrationError",
    "MigrationRunner",
    "MigrationState",
    "MigrationStatus",
    "check_order",
    "discover_migrations",
]
