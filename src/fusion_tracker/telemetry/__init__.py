"""Key-value telemetry tables and runtime tunables."""

from fusion_tracker.telemetry.bus import TelemetryBus, TelemetryTable, coerce_value
from fusion_tracker.telemetry.tuning import TuningStore

__all__ = ["TelemetryBus", "TelemetryTable", "TuningStore", "coerce_value"]
