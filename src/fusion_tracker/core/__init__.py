"""Core infrastructure: config, types, exceptions, and logging."""

from fusion_tracker.core.config import Settings, get_settings
from fusion_tracker.core.exceptions import (
    CameraConfigError,
    FieldLayoutError,
    FusionTrackerError,
    KinematicsMismatchError,
    TrackerNotInitializedError,
)
from fusion_tracker.core.logging import get_logger, setup_logging
from fusion_tracker.core.types import (
    CameraConfig,
    CameraMode,
    ModuleState,
    Pose2D,
    Pose3D,
    PoseSample,
    Transform3D,
    TrustVector,
    Twist2D,
    VisionMeasurement,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Types
    "Pose2D",
    "Pose3D",
    "Transform3D",
    "Twist2D",
    "ModuleState",
    "TrustVector",
    "PoseSample",
    "VisionMeasurement",
    "CameraMode",
    "CameraConfig",
    # Exceptions
    "FusionTrackerError",
    "KinematicsMismatchError",
    "CameraConfigError",
    "FieldLayoutError",
    "TrackerNotInitializedError",
    # Logging
    "setup_logging",
    "get_logger",
]
