"""Vision pose sources and field fiducial layout."""

from fusion_tracker.vision.cameras import (
    NO_TARGET_DISTANCE,
    CameraSource,
    CoprocessorCamera,
    FieldPoseCamera,
    ObjectPoseResolver,
)
from fusion_tracker.vision.layout import FieldLayout

__all__ = [
    "CameraSource",
    "FieldPoseCamera",
    "CoprocessorCamera",
    "ObjectPoseResolver",
    "NO_TARGET_DISTANCE",
    "FieldLayout",
]
