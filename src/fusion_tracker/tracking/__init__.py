"""Tracker orchestration: periodic fusion cycle and process-wide context."""

from fusion_tracker.tracking.tracker import (
    DrivetrainSource,
    Tracker,
    TrackerContext,
    cutoff_key,
    get_context,
)

__all__ = ["Tracker", "TrackerContext", "DrivetrainSource", "get_context", "cutoff_key"]
