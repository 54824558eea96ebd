"""Core data types and structures."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

from fusion_tracker.core.exceptions import CameraConfigError
from fusion_tracker.geometry.angles import wrap_angle


def _rotation_matrix(roll: float, pitch: float, yaw: float) -> NDArray[np.floating[Any]]:
    """Build an intrinsic Z-Y-X (yaw, pitch, roll) rotation matrix."""
    return Rotation.from_euler("ZYX", [yaw, pitch, roll]).as_matrix()


def _homogeneous(
    x: float, y: float, z: float, roll: float, pitch: float, yaw: float
) -> NDArray[np.floating[Any]]:
    matrix = np.eye(4, dtype=np.float64)
    matrix[:3, :3] = _rotation_matrix(roll, pitch, yaw)
    matrix[:3, 3] = (x, y, z)
    return matrix


def _decompose(
    matrix: NDArray[np.floating[Any]],
) -> tuple[float, float, float, float, float, float]:
    """Split a homogeneous matrix into (x, y, z, roll, pitch, yaw)."""
    yaw, pitch, roll = (float(a) for a in Rotation.from_matrix(matrix[:3, :3]).as_euler("ZYX"))
    x, y, z = (float(v) for v in matrix[:3, 3])
    return x, y, z, roll, pitch, yaw


@dataclass(frozen=True, slots=True)
class Pose2D:
    """Robot position and heading in the field frame.

    Heading is normalized into [0, 2*pi) on construction.
    """

    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "heading", wrap_angle(self.heading))

    @property
    def translation(self) -> tuple[float, float]:
        """Position as (x, y)."""
        return self.x, self.y

    def offset_by(self, offset: Pose2D) -> Pose2D:
        """Add a field-frame offset to this pose (translation and heading)."""
        return Pose2D(self.x + offset.x, self.y + offset.y, self.heading + offset.heading)

    def distance_to(self, other: Pose2D) -> float:
        """Euclidean distance between two poses."""
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass(frozen=True, slots=True)
class Transform3D:
    """Rigid 3D transform: translation in meters, rotation as roll/pitch/yaw radians."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    def to_matrix(self) -> NDArray[np.floating[Any]]:
        """4x4 homogeneous matrix."""
        return _homogeneous(self.x, self.y, self.z, self.roll, self.pitch, self.yaw)

    @classmethod
    def from_matrix(cls, matrix: NDArray[np.floating[Any]]) -> Transform3D:
        """Build a transform from a 4x4 homogeneous matrix."""
        return cls(*_decompose(matrix))

    def inverse(self) -> Transform3D:
        """Transform that undoes this one."""
        return Transform3D.from_matrix(np.linalg.inv(self.to_matrix()))

    @property
    def norm(self) -> float:
        """Length of the translation component."""
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)


@dataclass(frozen=True, slots=True)
class Pose3D:
    """Full 3D pose as reported by vision sources."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    def to_matrix(self) -> NDArray[np.floating[Any]]:
        """4x4 homogeneous matrix."""
        return _homogeneous(self.x, self.y, self.z, self.roll, self.pitch, self.yaw)

    @classmethod
    def from_matrix(cls, matrix: NDArray[np.floating[Any]]) -> Pose3D:
        """Build a pose from a 4x4 homogeneous matrix."""
        return cls(*_decompose(matrix))

    def transform_by(self, transform: Transform3D) -> Pose3D:
        """Apply a transform expressed in this pose's own frame."""
        return Pose3D.from_matrix(self.to_matrix() @ transform.to_matrix())

    def to_pose2d(self) -> Pose2D:
        """Project onto the floor plane, using yaw as heading."""
        return Pose2D(self.x, self.y, self.yaw)


@dataclass(frozen=True, slots=True)
class Twist2D:
    """Incremental robot-frame motion over one cycle."""

    dx: float = 0.0
    dy: float = 0.0
    dtheta: float = 0.0


@dataclass(frozen=True, slots=True)
class ModuleState:
    """Snapshot of one wheel module.

    Attributes:
        distance: Total distance driven by the wheel in meters
        azimuth: Wheel steering angle in radians (robot frame)
    """

    distance: float
    azimuth: float


@dataclass(frozen=True, slots=True)
class TrustVector:
    """Per-axis standard deviations (x, y, heading); smaller means more trusted."""

    x: float
    y: float
    heading: float

    def __post_init__(self) -> None:
        for axis in (self.x, self.y, self.heading):
            if axis < 0 or math.isnan(axis):
                raise ValueError(f"Trust values must be non-negative, got {self}")

    @classmethod
    def uniform(cls, value: float) -> TrustVector:
        """Same trust on every axis."""
        return cls(value, value, value)

    @classmethod
    def of(cls, translation: float, rotation: float) -> TrustVector:
        """Shared translation trust plus a separate rotation trust."""
        return cls(translation, translation, rotation)

    def as_array(self) -> NDArray[np.floating[Any]]:
        """Trust values as a numpy vector."""
        return np.array([self.x, self.y, self.heading], dtype=np.float64)


@dataclass(frozen=True, slots=True)
class PoseSample:
    """Odometry-only pose recorded at a timestamp (seconds)."""

    timestamp: float
    pose: Pose2D


@dataclass(frozen=True, slots=True)
class VisionMeasurement:
    """A single vision pose observation.

    Attributes:
        timestamp: Capture time in seconds, on the tracker's clock
        pose: Robot pose reported by the camera
        trust: Per-measurement trust override (None uses the engine default)
        source: Name of the camera that produced it
    """

    timestamp: float
    pose: Pose2D
    trust: TrustVector | None = None
    source: str = ""


class CameraMode(Enum):
    """What a camera's get_pose() reports."""

    ODOMETRY = auto()  # robot pose in the field frame
    OBJECT = auto()  # object pose relative to the robot


@dataclass(frozen=True, slots=True)
class CameraConfig:
    """Immutable camera configuration.

    Attributes:
        name: Camera name, also its telemetry table name
        mode: Initial camera mode
        cutoff_distance: Distance in meters beyond which readings are not used
        field_of_view: Diagonal field of view in radians (-1 when unknown)
        mount_transform: Robot-to-camera transform
    """

    name: str
    mode: CameraMode
    cutoff_distance: float = 3.0
    field_of_view: float = -1.0
    mount_transform: Transform3D = field(default_factory=Transform3D)

    def __post_init__(self) -> None:
        if not self.name:
            raise CameraConfigError("Camera name must not be empty")
        if self.cutoff_distance <= 0:
            raise CameraConfigError(
                f"Cutoff distance for '{self.name}' must be positive, got {self.cutoff_distance}"
            )
        if self.field_of_view != -1.0 and not 0 < self.field_of_view < 2 * math.pi:
            raise CameraConfigError(
                f"Field of view for '{self.name}' must be in (0, 2*pi) radians"
            )
