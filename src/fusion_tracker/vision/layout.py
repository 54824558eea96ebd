"""Fiducial tag field layout."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from scipy.spatial.transform import Rotation

from fusion_tracker.core.exceptions import FieldLayoutError
from fusion_tracker.core.logging import get_logger
from fusion_tracker.core.types import Pose3D

logger = get_logger(__name__)


def quaternion_to_euler(w: float, x: float, y: float, z: float) -> tuple[float, float, float]:
    """Convert a unit quaternion to (roll, pitch, yaw) radians."""
    norm = math.sqrt(w * w + x * x + y * y + z * z)
    if norm == 0:
        raise FieldLayoutError("Zero-length quaternion in field layout")
    yaw, pitch, roll = Rotation.from_quat([x, y, z, w]).as_euler("ZYX")
    return float(roll), float(pitch), float(yaw)


class FieldLayout:
    """Immutable map of fiducial tag id to field pose.

    The JSON format follows the common AprilTag layout files::

        {
          "tags": [
            {"ID": 1, "pose": {"translation": {"x": 1.0, "y": 2.0, "z": 0.5},
                               "rotation": {"quaternion": {"W": 1, "X": 0, "Y": 0, "Z": 0}}}}
          ],
          "field": {"length": 16.54, "width": 8.21}
        }
    """

    def __init__(
        self,
        tags: Mapping[int, Pose3D],
        field_length: float = 0.0,
        field_width: float = 0.0,
    ) -> None:
        self._tags: dict[int, Pose3D] = dict(tags)
        self.field_length = field_length
        self.field_width = field_width

    def __len__(self) -> int:
        return len(self._tags)

    @property
    def tag_ids(self) -> list[int]:
        """Sorted ids of all tags in the layout."""
        return sorted(self._tags)

    def get_tag_pose(self, tag_id: int) -> Pose3D | None:
        """Field pose of a tag, or None if the tag is unknown."""
        return self._tags.get(tag_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldLayout:
        """Build a layout from parsed JSON data.

        Raises:
            FieldLayoutError: If required fields are missing or malformed
        """
        tags: dict[int, Pose3D] = {}
        try:
            for entry in data["tags"]:
                translation = entry["pose"]["translation"]
                quaternion = entry["pose"]["rotation"]["quaternion"]
                roll, pitch, yaw = quaternion_to_euler(
                    float(quaternion["W"]),
                    float(quaternion["X"]),
                    float(quaternion["Y"]),
                    float(quaternion["Z"]),
                )
                tags[int(entry["ID"])] = Pose3D(
                    float(translation["x"]),
                    float(translation["y"]),
                    float(translation["z"]),
                    roll,
                    pitch,
                    yaw,
                )
            field = data.get("field", {})
            length = float(field.get("length", 0.0))
            width = float(field.get("width", 0.0))
        except (KeyError, TypeError, ValueError) as e:
            raise FieldLayoutError(f"Malformed field layout: {e}") from e

        return cls(tags, length, width)

    @classmethod
    def from_file(cls, path: Path | str) -> FieldLayout:
        """Load a layout from a JSON file.

        Raises:
            FieldLayoutError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FieldLayoutError(f"Could not load field layout {path}: {e}") from e

        layout = cls.from_dict(data)
        logger.info("Loaded field layout with %d tags from %s", len(layout), path)
        return layout
