"""
Database Context & Unit of Work

DESIGN DECISION: There is no module-level connection. A DatabaseContext
is constructed explicitly, owns the single sqlite3 connection for its
lifetime, and is handed to the data store and migration runner.

The connection runs in autocommit mode (isolation_level=None) so that
transaction boundaries are exactly where a UnitOfWork puts them and
nowhere else. sqlite3's implicit BEGIN handling is never relied on.

CONCURRENCY: one process, one connection, one thread. Nothing here is
safe to share across threads and nothing tries to be.
"""

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from clarity_finance.log import get_logger


MEMORY_PATH = ":memory:"


class ContextClosedError(sqlite3.ProgrammingError):
    """The context has no open connection."""
    pass


class UnitOfWork:
    """
    Explicit transaction boundary.

    Use begin()/commit()/rollback() directly, or as a context manager:
    commits on normal exit, rolls back if the block raises.
    """

    def __init__(self, connection: sqlite3.Connection):
        self._conn = connection
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def begin(self) -> None:
        if self._active:
            raise sqlite3.ProgrammingError("Unit of work already started")
        self._conn.execute("BEGIN")
        self._active = True

    def commit(self) -> None:
        if not self._active:
            raise sqlite3.ProgrammingError("No active unit of work to commit")
        self._conn.execute("COMMIT")
        self._active = False

    def rollback(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    def __enter__(self) -> 'UnitOfWork':
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                self.commit()
            except BaseException:
                self.rollback()
                raise
        else:
            self.rollback()
        return False


class DatabaseContext:
    """
    Owns the SQLite connection and the timestamp clock.

    Lifecycle: open() once at startup, close() once at shutdown.
    """

    def __init__(self, path: str, foreign_keys: bool = True):
        """
        Initialize (but do not open) a database context.

        Args:
            path: Database file path, or ':memory:'
            foreign_keys: Enforce FOREIGN KEY constraints
        """
        self._path = path
        self._foreign_keys = foreign_keys
        self._conn: Optional[sqlite3.Connection] = None
        self._last_timestamp: Optional[datetime] = None
        self._logger = get_logger(__name__)

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        """The raw connection. Raises ContextClosedError if not open."""
        if self._conn is None:
            raise ContextClosedError(f"Database context for {self._path} is not open")
        return self._conn

    def open(self) -> sqlite3.Connection:
        """Create the parent directory if needed and connect."""
        if self._conn is not None:
            return self._conn

        if self._path != MEMORY_PATH:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self._path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA foreign_keys = {'ON' if self._foreign_keys else 'OFF'}")
        self._conn = conn

        self._logger.info("database_opened", path=self._path, foreign_keys=self._foreign_keys)
        return conn

    def close(self) -> None:
        """Release the connection. Safe to call twice."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._logger.info("database_closed", path=self._path)

    def transaction(self) -> UnitOfWork:
        """Create a unit of work on the open connection."""
        return UnitOfWork(self.connection)

    def now(self) -> str:
        """
        Current UTC instant as ISO-8601 text with microseconds and 'Z'.

        Strictly increasing for the lifetime of the context, so two writes
        in the same microsecond still get ordered timestamps.
        """
        current = datetime.now(timezone.utc)
        if self._last_timestamp is not None and current <= self._last_timestamp:
            current = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = current
        return format_timestamp(current)

    def __enter__(self) -> 'DatabaseContext':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime in the fixed-width stored format."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
