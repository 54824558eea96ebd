"""Vision pose sources.

Every query here answers "no data" with None or a sentinel instead of
raising, so a missing or misbehaving camera never stalls the tracker cycle.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Callable

from fusion_tracker.core.exceptions import CameraConfigError
from fusion_tracker.core.logging import get_logger
from fusion_tracker.core.types import CameraConfig, CameraMode, Pose3D, Transform3D
from fusion_tracker.telemetry.bus import TelemetryBus, TelemetryTable
from fusion_tracker.vision.layout import FieldLayout

logger = get_logger(__name__)

NO_TARGET_DISTANCE = -1.0

ObjectPoseResolver = Callable[[TelemetryTable], Pose3D | None]


def _pose_from_array(values: tuple[float, ...]) -> Pose3D | None:
    """[x, y, z, roll, pitch, yaw] to Pose3D; None if too short."""
    if len(values) < 6:
        return None
    return Pose3D(*values[:6])


def _transform_from_array(values: tuple[float, ...]) -> Transform3D | None:
    if len(values) < 6:
        return None
    return Transform3D(*values[:6])


def _target_distance(camera_to_target: Transform3D | None) -> float:
    """Translation length, or NO_TARGET_DISTANCE when unknown or not finite."""
    if camera_to_target is None:
        return NO_TARGET_DISTANCE
    distance = camera_to_target.norm
    return distance if math.isfinite(distance) else NO_TARGET_DISTANCE


class CameraSource(ABC):
    """Base class for cameras feeding the tracker.

    In ODOMETRY mode get_pose() returns the robot pose in the field frame;
    in OBJECT mode it returns an object pose relative to the robot, produced
    by a named resolver reading the camera's telemetry table.
    """

    def __init__(self, config: CameraConfig, bus: TelemetryBus) -> None:
        """Initialize camera.

        Args:
            config: Camera configuration
            bus: Telemetry bus holding the camera's table (named after the camera)
        """
        self.config = config
        self.table = bus.get_table(config.name)
        self._mode = config.mode
        self._resolvers: dict[str, ObjectPoseResolver] = {}
        self._selected_resolver: str | None = None

    @property
    def name(self) -> str:
        """Camera name."""
        return self.config.name

    def get_mode(self) -> CameraMode:
        """Current camera mode."""
        return self._mode

    def set_mode(self, mode: CameraMode) -> None:
        """Switch between ODOMETRY and OBJECT reporting."""
        if mode != self._mode:
            logger.info("Camera %s switched to %s mode", self.name, mode.name)
        self._mode = mode

    @abstractmethod
    def has_target(self) -> bool:
        """Whether the camera currently sees a target."""

    @abstractmethod
    def get_pose(self) -> Pose3D | None:
        """Robot field pose (ODOMETRY) or object pose (OBJECT), None without a target."""

    @abstractmethod
    def get_latency(self) -> float:
        """Seconds between image capture and now."""

    @abstractmethod
    def get_distance_from_target(self) -> float:
        """Distance to the current target in meters, NO_TARGET_DISTANCE if none."""

    @property
    def resolver_names(self) -> list[str]:
        """Names of registered object pose resolvers."""
        return list(self._resolvers)

    def add_object_resolver(self, name: str, resolver: ObjectPoseResolver) -> None:
        """Register a function producing an object pose from the camera table.

        Args:
            name: Object name
            resolver: Called with this camera's telemetry table; returns the
                object pose relative to the robot, or None
        """
        self._resolvers[name] = resolver

    def select_resolver(self, name: str | None) -> bool:
        """Choose which resolver get_pose() uses in OBJECT mode.

        Returns:
            False if no resolver with that name is registered
        """
        if name is not None and name not in self._resolvers:
            logger.warning("No object resolver named '%s' on camera %s", name, self.name)
            return False
        self._selected_resolver = name
        return True

    def get_object_pose(self, name: str) -> Pose3D | None:
        """Pose of a named object; OBJECT mode only."""
        if self._mode != CameraMode.OBJECT:
            logger.warning("Camera %s is not in OBJECT mode, use get_pose() instead", self.name)
            return None

        resolver = self._resolvers.get(name)
        if resolver is None:
            logger.warning("No object resolver named '%s' on camera %s", name, self.name)
            return None

        try:
            return resolver(self.table)
        except Exception:
            logger.exception("Object resolver '%s' failed on camera %s", name, self.name)
            return None

    def _resolve_object_pose(self) -> Pose3D | None:
        """Pose from the selected resolver, or the only one registered."""
        name = self._selected_resolver
        if name is None:
            if not self._resolvers:
                logger.debug("Camera %s has no object resolvers", self.name)
                return None
            if len(self._resolvers) > 1:
                logger.warning(
                    "Camera %s has %d object resolvers and none selected",
                    self.name,
                    len(self._resolvers),
                )
                return None
            name = next(iter(self._resolvers))
        return self.get_object_pose(name)


class FieldPoseCamera(CameraSource):
    """Camera that localizes itself on the field from fiducial tags onboard.

    Table entries read:
        tv: 1 when a target is visible
        botpose_wpiblue: robot field pose [x, y, z, roll, pitch, yaw]
        targetpose_cameraspace: target pose relative to the camera
        tl, cl: pipeline and capture latency in milliseconds
    """

    def has_target(self) -> bool:
        return self.table.get_integer("tv", 0) == 1

    def get_pose(self) -> Pose3D | None:
        if not self.has_target():
            return None

        if self._mode == CameraMode.ODOMETRY:
            pose = _pose_from_array(self.table.get_double_array("botpose_wpiblue", ()))
            if pose is None:
                logger.debug("Camera %s reported a target without a bot pose", self.name)
            return pose

        return self._resolve_object_pose()

    def get_latency(self) -> float:
        pipeline_ms = self.table.get_double("tl", 0.0)
        capture_ms = self.table.get_double("cl", 0.0)
        return (pipeline_ms + capture_ms) / 1000.0

    def get_distance_from_target(self) -> float:
        if not self.has_target():
            return NO_TARGET_DISTANCE

        target = _transform_from_array(self.table.get_double_array("targetpose_cameraspace", ()))
        return _target_distance(target)


class CoprocessorCamera(CameraSource):
    """Camera whose results are published by a vision coprocessor.

    Robot pose is computed here from the best target's camera-to-target
    transform, that tag's field pose and the camera mount transform.

    Table entries read:
        hasTarget: whether any target is visible
        targetFiducialId: id of the best target
        targetPose: camera-to-target transform [x, y, z, roll, pitch, yaw]
        latencyMillis: result latency in milliseconds
    """

    def __init__(
        self,
        config: CameraConfig,
        bus: TelemetryBus,
        layout: FieldLayout | None = None,
    ) -> None:
        """Initialize camera.

        Args:
            config: Camera configuration
            bus: Telemetry bus holding the camera's table
            layout: Field tag layout, required for ODOMETRY mode

        Raises:
            CameraConfigError: If ODOMETRY mode is requested without a layout
        """
        if config.mode == CameraMode.ODOMETRY and layout is None:
            raise CameraConfigError(f"Camera {config.name} needs a field layout for odometry mode")

        super().__init__(config, bus)
        self.layout = layout

    def has_target(self) -> bool:
        return self.table.get_boolean("hasTarget", False)

    def _camera_to_target(self) -> Transform3D | None:
        return _transform_from_array(self.table.get_double_array("targetPose", ()))

    def get_pose(self) -> Pose3D | None:
        if not self.has_target():
            return None

        if self._mode == CameraMode.OBJECT:
            return self._resolve_object_pose()

        if self.layout is None:
            logger.error("Camera %s cannot be used for odometry without a field layout", self.name)
            return None

        tag_id = self.table.get_integer("targetFiducialId", -1)
        tag_pose = self.layout.get_tag_pose(tag_id)
        if tag_pose is None:
            logger.debug("Camera %s sees tag %d which is not in the layout", self.name, tag_id)
            return None

        camera_to_target = self._camera_to_target()
        if camera_to_target is None:
            return None

        camera_pose = tag_pose.transform_by(camera_to_target.inverse())
        return camera_pose.transform_by(self.config.mount_transform.inverse())

    def get_latency(self) -> float:
        return self.table.get_double("latencyMillis", 0.0) / 1000.0

    def get_distance_from_target(self) -> float:
        if not self.has_target():
            return NO_TARGET_DISTANCE

        return _target_distance(self._camera_to_target())
