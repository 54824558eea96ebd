"""In-process key-value telemetry tables.

Tables mirror a publish/subscribe dashboard store: typed getters fall back to
the caller's default when a key is absent or holds the wrong type, and
listeners are told about every write.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from fusion_tracker.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TableListener = Callable[[str, Any], None]


def coerce_value(value: Any, value_type: type[T]) -> T | None:
    """Return value as value_type, or None if it is not compatible.

    Integers are accepted where floats are asked for; booleans are never
    treated as numbers.
    """
    if value is None:
        return None
    if value_type is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)  # type: ignore[return-value]
        return None
    if value_type is int:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value  # type: ignore[return-value]
        if isinstance(value, float) and value.is_integer():
            return int(value)  # type: ignore[return-value]
        return None
    if isinstance(value, value_type):
        return value
    return None


class TelemetryTable:
    """A named group of telemetry entries."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._values: dict[str, Any] = {}
        self._listeners: list[TableListener] = []
        self._lock = threading.Lock()

    def contains_key(self, key: str) -> bool:
        """Check whether a key has been written."""
        with self._lock:
            return key in self._values

    def keys(self) -> list[str]:
        """All keys currently stored."""
        with self._lock:
            return list(self._values)

    def get_value(self, key: str) -> Any:
        """Raw stored value, or None."""
        with self._lock:
            return self._values.get(key)

    def get(self, key: str, value_type: type[T], default: T) -> T:
        """Typed read with fallback.

        Args:
            key: Entry name
            value_type: Expected type (float, int, bool, str)
            default: Returned when the entry is missing or of another type
        """
        value = coerce_value(self.get_value(key), value_type)
        return default if value is None else value

    def get_double(self, key: str, default: float) -> float:
        return self.get(key, float, default)

    def get_integer(self, key: str, default: int) -> int:
        return self.get(key, int, default)

    def get_boolean(self, key: str, default: bool) -> bool:
        return self.get(key, bool, default)

    def get_string(self, key: str, default: str) -> str:
        return self.get(key, str, default)

    def get_double_array(self, key: str, default: Sequence[float]) -> tuple[float, ...]:
        """Read a numeric array; any non-numeric element yields the default."""
        value = self.get_value(key)
        if not isinstance(value, (list, tuple)):
            return tuple(default)

        numbers = [coerce_value(v, float) for v in value]
        if any(n is None for n in numbers):
            return tuple(default)
        return tuple(n for n in numbers if n is not None)

    def set_value(self, key: str, value: Any) -> None:
        """Write an entry and notify listeners."""
        with self._lock:
            self._values[key] = value
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(key, value)
            except Exception:
                logger.exception("Telemetry listener failed for %s/%s", self.name, key)

    def set_double(self, key: str, value: float) -> None:
        self.set_value(key, float(value))

    def set_integer(self, key: str, value: int) -> None:
        self.set_value(key, int(value))

    def set_boolean(self, key: str, value: bool) -> None:
        self.set_value(key, bool(value))

    def set_string(self, key: str, value: str) -> None:
        self.set_value(key, str(value))

    def set_double_array(self, key: str, values: Sequence[float]) -> None:
        self.set_value(key, tuple(float(v) for v in values))

    def delete(self, key: str) -> None:
        """Remove an entry if present."""
        with self._lock:
            self._values.pop(key, None)

    def add_listener(self, listener: TableListener) -> None:
        """Call listener(key, value) after every write."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: TableListener) -> None:
        """Stop notifying a listener."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)


class TelemetryBus:
    """Registry of telemetry tables, one per name."""

    def __init__(self) -> None:
        self._tables: dict[str, TelemetryTable] = {}
        self._lock = threading.Lock()

    def get_table(self, name: str) -> TelemetryTable:
        """Get (creating on first use) the table with this name."""
        with self._lock:
            if name not in self._tables:
                self._tables[name] = TelemetryTable(name)
            return self._tables[name]

    def table_names(self) -> list[str]:
        """Names of all tables created so far."""
        with self._lock:
            return list(self._tables)
