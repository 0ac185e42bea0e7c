"""
Migration Runner

Brings the database schema up to date at startup.

Lifecycle of each unit:  pending -> running -> complete

Only `complete` is ever persisted: a unit's effects and its `_migrations`
ledger row are written inside ONE unit of work. If anything fails, both
roll back, the unit stays pending and is retried on the next start.

DESIGN DECISION: The runner works on the raw connection, not through the
entity store. It runs before the store is considered ready, and schema
changes are not entity mutations.

IMPORTANT:
- Units run in name order (fixed-width numeric prefix: 001_, 002_, ...)
- The first failure stops the run and raises MigrationError. Startup
  must treat that as fatal.
- Units must not call executescript(); it commits on its own and would
  break the transaction boundary.
"""

import importlib
import pkgutil
import re
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, Field

from clarity_finance.log import get_logger
from clarity_finance.services.storage.connection import DatabaseContext


LEDGER_TABLE = "_migrations"
DEFAULT_PACKAGE = "clarity_finance.migrations.versions"

_NAME_RE = re.compile(r"^(\d+)_\w+$")

_CREATE_LEDGER = f"""
    CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        run_at TEXT NOT NULL
    )
"""


class MigrationError(Exception):
    """A migration could not be discovered or applied."""

    def __init__(self, message: str, migration: Optional[str] = None):
        super().__init__(message)
        self.migration = migration


class MigrationState(str, Enum):
    """Persisted status of a unit. 'running' is never stored."""
    PENDING = "pending"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Migration:
    """One ordered unit of schema change."""
    name: str
    up: Callable[[sqlite3.Connection], None]
    down: Optional[Callable[[sqlite3.Connection], None]] = None


class MigrationStatus(BaseModel):
    """Introspection row for list_migrations()."""

    name: str
    status: MigrationState
    run_at: Optional[str] = Field(
        default=None,
        description="When the unit was applied (complete units only)"
    )


def check_order(migrations: Sequence[Migration]) -> list[Migration]:
    """
    Sort units by name and enforce the naming convention.

    Raises:
        MigrationError: bad name, duplicate name, or mixed prefix widths
    """
    widths = set()
    seen = set()
    for migration in migrations:
        match = _NAME_RE.match(migration.name)
        if not match:
            raise MigrationError(
                f"Migration name must look like '001_description': {migration.name}",
                migration.name,
            )
        if migration.name in seen:
            raise MigrationError(f"Duplicate migration name: {migration.name}", migration.name)
        seen.add(migration.name)
        widths.add(len(match.group(1)))

    if len(widths) > 1:
        raise MigrationError(
            f"Migration prefixes must have the same width, found widths {sorted(widths)}"
        )

    return sorted(migrations, key=lambda m: m.name)


def discover_migrations(package: str = DEFAULT_PACKAGE) -> list[Migration]:
    """
    Import every migration module in a package.

    Each module named like '001_description' must define up(conn) and
    may define down(conn).
    """
    pkg = importlib.import_module(package)
    found = []

    for module_info in pkgutil.iter_modules(pkg.__path__):
        if not _NAME_RE.match(module_info.name):
            continue
        module = importlib.import_module(f"{package}.{module_info.name}")
        up = getattr(module, "up", None)
        if not callable(up):
            raise MigrationError(
                f"Migration {module_info.name} does not define an 'up' function",
                module_info.name,
            )
        down = getattr(module, "down", None)
        found.append(Migration(
            name=module_info.name,
            up=up,
            down=down if callable(down) else None,
        ))

    return check_order(found)


class MigrationRunner:
    """
    Applies pending migrations and reports schema status.
    """

    def __init__(
        self,
        context: DatabaseContext,
        migrations: Optional[Sequence[Migration]] = None,
    ):
        """
        Initialize the runner.

        Args:
            context: Open database context
            migrations: Units to manage. Discovered from the bundled
                        versions package if None.
        """
        self._context = context
        self._migrations = (
            check_order(migrations) if migrations is not None else discover_migrations()
        )
        self._logger = get_logger(__name__)

    @property
    def migrations(self) -> list[Migration]:
        return list(self._migrations)

    def _ensure_ledger(self) -> None:
        self._context.connection.execute(_CREATE_LEDGER)

    def _ledger_exists(self) -> bool:
        row = self._context.connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (LEDGER_TABLE,),
        ).fetchone()
        return row is not None

    def _applied(self) -> dict[str, str]:
        """Ledger contents as name -> run_at."""
        if not self._ledger_exists():
            return {}
        rows = self._context.connection.execute(
            f"SELECT name, run_at FROM {LEDGER_TABLE}"
        ).fetchall()
        return {row["name"]: row["run_at"] for row in rows}

    def _apply(self, migration: Migration) -> None:
        conn = self._context.connection
        with self._context.transaction():
            migration.up(conn)
            conn.execute(
                f"INSERT INTO {LEDGER_TABLE} (name, run_at) VALUES (?, ?)",
                (migration.name, self._context.now()),
            )

    def run(self) -> int:
        """
        Apply every pending migration in order.

        Returns:
            Number of migrations applied (0 when already up to date)

        Raises:
            MigrationError: on the first failing unit; later units are not
                            attempted
        """
        try:
            self._ensure_ledger()
            applied = self._applied()
        except sqlite3.Error as e:
            raise MigrationError(f"Could not read migration ledger: {e}") from e

        count = 0
        for migration in self._migrations:
            if migration.name in applied:
                continue

            self._logger.info("migration_started", migration=migration.name)
            try:
                self._apply(migration)
            except Exception as e:
                self._logger.error("migration_failed", migration=migration.name, error=str(e))
                raise MigrationError(
                    f"Migration {migration.name} failed: {e}",
                    migration.name,
                ) from e

            count += 1
            self._logger.info("migration_completed", migration=migration.name)

        if count == 0:
            self._logger.info("migrations_up_to_date")
        else:
            self._logger.info("migrations_applied", count=count)

        return count

    def current_version(self) -> Optional[str]:
        """Name of the most recently applied unit, or None."""
        try:
            if not self._ledger_exists():
                return None
            row = self._context.connection.execute(
                f"SELECT name FROM {LEDGER_TABLE} ORDER BY id DESC LIMIT 1"
            ).fetchone()
        except sqlite3.Error:
            return None
        return row["name"] if row is not None else None

    def list_migrations(self) -> list[MigrationStatus]:
        """Every known unit with its status and applied timestamp."""
        try:
            applied = self._applied()
        except sqlite3.Error:
            applied = {}

        return [
            MigrationStatus(
                name=migration.name,
                status=MigrationState.COMPLETE if migration.name in applied else MigrationState.PENDING,
                run_at=applied.get(migration.name),
            )
            for migration in self._migrations
        ]

    def rollback(self, name: str) -> None:
        """
        Manually undo one applied unit with its down() step.

        Never called by run(). The undo and the ledger removal share one
        unit of work.

        Raises:
            MigrationError: unknown unit, not applied, no down(), or failure
        """
        migration = next((m for m in self._migrations if m.name == name), None)
        if migration is None:
            raise MigrationError(f"Unknown migration: {name}", name)
        if migration.down is None:
            raise MigrationError(f"Migration {name} has no down step", name)
        if name not in self._applied():
            raise MigrationError(f"Migration {name} has not been applied", name)

        conn = self._context.connection
        try:
            with self._context.transaction():
                migration.down(conn)
                conn.execute(f"DELETE FROM {LEDGER_TABLE} WHERE name = ?", (name,))
        except Exception as e:
            self._logger.error("migration_rollback_failed", migration=name, error=str(e))
            raise MigrationError(f"Rollback of {name} failed: {e}", name) from e

        self._logger.info("migration_rolled_back", migration=name)
