"""
Config Store

User preferences (display name, current month, ...) kept in the `config`
table and served from an in-memory cache.

DESIGN DECISION: The config table goes through the same validated
insert/update contract as every other entity. The cache lives on the
instance (no module-level state), is filled by initialize(), and is
only changed AFTER storage accepted a write.
"""

import json
from typing import Any, Optional

from clarity_finance.config import DatabaseSettings
from clarity_finance.events import EventBus
from clarity_finance.log import get_logger
from clarity_finance.models.entities import EntityType
from clarity_finance.models.events import EventMessageBuilder
from clarity_finance.models.results import ErrorKind, Result
from clarity_finance.services.storage.interface import EntityStoreInterface


# Keys computed at read time rather than stored
COMPUTED_KEYS = ("db_path",)


def decode_value(raw: Any) -> Any:
    """Stored values are JSON text; fall back to the raw text."""
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


class ConfigStore:
    """
    Cached key/value configuration over the entity store.
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        events: Optional[EventBus] = None,
        settings: Optional[DatabaseSettings] = None,
    ):
        """
        Initialize the config store (cache starts empty).

        Args:
            store: Entity store used for all reads and writes
            events: Bus for config:changed notifications
            settings: Database settings, used for the computed db_path key
        """
        self._store = store
        self._events = events
        self._settings = settings
        self._cache: dict[str, Any] = {}
        self._logger = get_logger(__name__)

    def initialize(self) -> Result:
        """
        Load every live config row into the cache.

        Returns:
            Result with the number of keys loaded
        """
        rows = self._store.query(EntityType.CONFIG)
        if not rows.ok:
            self._logger.warning("config_load_failed", message=rows.error.message)
            return rows

        self._cache = {row["key"]: decode_value(row["value"]) for row in rows.data}
        self._logger.debug("config_loaded", keys=sorted(self._cache))
        return Result.success(len(self._cache))

    def get(self, key: str) -> Result:
        """Read a value from the cache."""
        if key in self._cache:
            return Result.success(self._cache[key])

        if key in COMPUTED_KEYS and self._settings is not None:
            return Result.success(self._settings.path)

        return Result.failure(
            ErrorKind.NOT_FOUND,
            f'Config key "{key}" not found',
            key=key,
        )

    def get_all(self) -> Result:
        """Snapshot of every cached value."""
        return Result.success(dict(self._cache))

    def set(self, key: str, value: Any) -> Result:
        """
        Persist a value and update the cache.

        Returns:
            Result with {"key": key, "value": value}
        """
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            return Result.failure(
                ErrorKind.VALIDATION_ERROR,
                f"value: Config value is not JSON serializable ({e})",
                key=key,
            )

        existing = self._store.query(EntityType.CONFIG, {"key": key}, limit=1)
        if not existing.ok:
            return existing

        if existing.data:
            written = self._store.update(
                EntityType.CONFIG,
                existing.data[0]["id"],
                {"value": serialized},
            )
        else:
            written = self._store.insert(
                EntityType.CONFIG,
                {"key": key, "value": serialized},
            )

        if not written.ok:
            return written

        previous_value = self._cache.get(key)
        self._cache[key] = value

        if self._events is not None:
            try:
                self._events.publish(
                    EventMessageBuilder.config_changed(key, value, previous_value)
                )
            except Exception as e:
                self._logger.error("event_publish_failed", key=key, error=str(e))

        return Result.success({"key": key, "value": value})

    def clear_cache(self) -> None:
        """Drop every cached value. initialize() reloads them."""
        self._cache.clear()
