"""Runtime-tunable values read from the telemetry bus."""

from __future__ import annotations

from typing import Any, TypeVar

from fusion_tracker.core.logging import get_logger
from fusion_tracker.telemetry.bus import TelemetryBus, TelemetryTable, coerce_value

logger = get_logger(__name__)

T = TypeVar("T")

TUNING_TABLE = "Tune"


class TuningStore:
    """Typed access to tunables with default write-back.

    A tunable that is missing, or holds a value of the wrong type, is
    (re)created with the caller's default so it shows up for editing.
    """

    def __init__(self, bus: TelemetryBus, table_name: str = TUNING_TABLE) -> None:
        self._table: TelemetryTable = bus.get_table(table_name)

    @property
    def table(self) -> TelemetryTable:
        """Backing telemetry table."""
        return self._table

    def get(self, key: str, value_type: type[T], default: T) -> T:
        """Read a tunable.

        Args:
            key: Tunable name
            value_type: Expected type (float, int, bool, str)
            default: Value to use and write back when missing or mistyped

        Returns:
            Stored value or default
        """
        value = coerce_value(self._table.get_value(key), value_type)
        if value is None:
            logger.warning(
                "[%s] is missing or not a %s, setting it to %r",
                key,
                value_type.__name__,
                default,
            )
            self._table.set_value(key, default)
            return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Write a tunable."""
        self._table.set_value(key, value)
        logger.debug("Updated [%s] to %r", key, value)

    def remove(self, key: str) -> None:
        """Delete a tunable."""
        self._table.delete(key)
        logger.debug("Removed [%s]", key)
