"""
Core Bootstrap for Clarity Finance

This module ties together the data-access components and defines the
startup and shutdown flow:

1. Open the database context (creates the data directory)
2. Run pending migrations
3. Build the event bus, entity store and config store
4. Load config into the cache
5. Announce `database:initialized`

DESIGN DECISION: A failed migration is fatal. The context is closed again
and start() returns a DATABASE_ERROR result, so no feature code ever runs
against a half-migrated schema.

Feature modules receive the store, config store and bus from here; they
never open connections themselves.
"""

import sqlite3
from typing import Optional, Sequence

from clarity_finance.config import AppSettings, DatabaseSettings, get_settings
from clarity_finance.events import EventBus
from clarity_finance.log import configure_logging, get_logger
from clarity_finance.migrations import Migration, MigrationError, MigrationRunner
from clarity_finance.models.events import EventMessageBuilder
from clarity_finance.models.results import ErrorKind, Result
from clarity_finance.services.config_store import ConfigStore
from clarity_finance.services.storage import DatabaseContext, SQLiteEntityStore
from clarity_finance.validation import SchemaRegistry


class CoreNotStartedError(RuntimeError):
    """A component was requested before start() succeeded."""


class ClarityCore:
    """
    Owns the connection and the shared data-access components.

    Usage:
        with ClarityCore() as core:
            core.store.insert("accounts", {...})
    """

    def __init__(
        self,
        db_settings: Optional[DatabaseSettings] = None,
        app_settings: Optional[AppSettings] = None,
        migrations: Optional[Sequence[Migration]] = None,
        registry: Optional[SchemaRegistry] = None,
        events: Optional[EventBus] = None,
    ):
        """
        Initialize the core (nothing is opened until start()).

        Args:
            db_settings: Database location and pragmas (from env if None)
            app_settings: Environment and debug flags (from env if None)
            migrations: Units to apply. The bundled units if None.
            registry: Schema registry for the store (default schemas if None)
            events: Bus to use. Pass one to subscribe before start();
                    a new bus honoring debug_mode is created if None.
        """
        settings = get_settings() if db_settings is None or app_settings is None else None
        self._db_settings = db_settings or settings.database
        self._app_settings = app_settings or settings.app
        self._migrations = migrations
        self._registry = registry
        self._bus = events

        self._context: Optional[DatabaseContext] = None
        self._events: Optional[EventBus] = None
        self._store: Optional[SQLiteEntityStore] = None
        self._config: Optional[ConfigStore] = None
        self._migrations_run = 0
        self._logger = get_logger(__name__)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_started(self) -> bool:
        return self._store is not None

    def start(self) -> Result:
        """
        Open the database, migrate it and build the components.

        Returns:
            Result with {"path": ..., "migrations_run": n} or a
            DATABASE_ERROR if the database could not be opened or migrated
        """
        if self.is_started:
            return Result.success(self._startup_summary())

        context = DatabaseContext(
            self._db_settings.path,
            foreign_keys=self._db_settings.foreign_keys,
        )

        try:
            context.open()
            runner = MigrationRunner(context, self._migrations)
            migrations_run = runner.run()
        except MigrationError as e:
            context.close()
            self._logger.error("startup_failed", reason="migration", migration=e.migration, error=str(e))
            return Result.failure(
                ErrorKind.DATABASE_ERROR,
                str(e),
                migration=e.migration,
            )
        except (OSError, sqlite3.Error) as e:
            context.close()
            self._logger.error("startup_failed", reason="open", error=str(e))
            return Result.failure(
                ErrorKind.DATABASE_ERROR,
                f"Could not open database at {self._db_settings.path}: {e}",
            )

        events = self._bus or EventBus(debug_mode=self._app_settings.debug_mode)
        store = SQLiteEntityStore(context, registry=self._registry, events=events)
        config = ConfigStore(store, events=events, settings=self._db_settings)

        loaded = config.initialize()
        if not loaded.ok:
            context.close()
            return loaded

        self._context = context
        self._events = events
        self._store = store
        self._config = config
        self._migrations_run = migrations_run

        events.publish(EventMessageBuilder.database_initialized(migrations_run))
        self._logger.info(
            "core_started",
            path=context.path,
            migrations_run=migrations_run,
            environment=self._app_settings.app_environment,
        )
        return Result.success(self._startup_summary())

    def stop(self) -> None:
        """Close the connection and drop the components. Safe to call twice."""
        if self._context is not None:
            self._context.close()
            self._logger.info("core_stopped", path=self._context.path)

        self._context = None
        self._events = None
        self._store = None
        self._config = None

    def _startup_summary(self) -> dict:
        return {"path": self._context.path, "migrations_run": self._migrations_run}

    def __enter__(self) -> "ClarityCore":
        self.start().unwrap()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # =========================================================================
    # Components
    # =========================================================================

    def _require(self, component):
        if component is None:
            raise CoreNotStartedError("ClarityCore.start() has not completed")
        return component

    @property
    def context(self) -> DatabaseContext:
        return self._require(self._context)

    @property
    def store(self) -> SQLiteEntityStore:
        return self._require(self._store)

    @property
    def config(self) -> ConfigStore:
        return self._require(self._config)

    @property
    def events(self) -> EventBus:
        return self._require(self._events)


def create_core(path: Optional[str] = None, debug_mode: Optional[bool] = None) -> ClarityCore:
    """
    Factory function to create a core with optional overrides.

    Args:
        path: Database file (or ":memory:"). From settings if None.
        debug_mode: Event bus debug logging. From settings if None.

    Returns:
        An unstarted ClarityCore
    """
    settings = get_settings()
    db_settings = settings.database
    app_settings = settings.app

    configure_logging(app_settings.log_level)

    if path is not None:
        db_settings = db_settings.model_copy(update={"path": path})
    if debug_mode is not None:
        app_settings = app_settings.model_copy(update={"debug_mode": debug_mode})

    return ClarityCore(db_settings=db_settings, app_settings=app_settings)
