"""Latency-aware odometry/vision pose fusion.

Odometry is integrated every cycle and recorded in a short history. A vision
measurement is compared against the pose believed at its own capture time,
and a trust-weighted share of the difference is folded into a cumulative
correction applied to every estimate from then on. History is never rewritten,
so each correction costs one buffer lookup.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from fusion_tracker.core.config import FusionSettings
from fusion_tracker.core.logging import get_logger
from fusion_tracker.core.types import ModuleState, Pose2D, TrustVector, VisionMeasurement
from fusion_tracker.geometry.angles import signed_angle_difference
from fusion_tracker.odometry.history import PoseHistoryBuffer
from fusion_tracker.odometry.integrator import OdometryIntegrator
from fusion_tracker.odometry.kinematics import KinematicsModel

logger = get_logger(__name__)


def correction_weights(
    state_trust: TrustVector, measurement_trust: TrustVector
) -> NDArray[np.floating[Any]]:
    """Per-axis share of a residual to accept.

    weight = state / (state + measurement), so a measurement with a much
    smaller standard deviation than the state pulls the estimate almost all
    the way. Axes where both are zero split evenly.
    """
    state = state_trust.as_array()
    total = state + measurement_trust.as_array()
    return np.divide(state, total, out=np.full(3, 0.5), where=total > 0)


class FusionEngine:
    """Owns odometry integration, pose history and the vision correction."""

    def __init__(
        self,
        kinematics: KinematicsModel,
        gyro_heading: float,
        module_states: Sequence[ModuleState],
        initial_pose: Pose2D | None = None,
        state_trust: TrustVector | None = None,
        vision_trust: TrustVector | None = None,
        settings: FusionSettings | None = None,
    ) -> None:
        """Initialize engine at a known pose.

        Args:
            kinematics: Drivetrain kinematics model
            gyro_heading: Current gyro reading (radians)
            module_states: Current module snapshot
            initial_pose: Starting field pose (origin if None)
            state_trust: Odometry standard deviations (settings wheel_trust if None)
            vision_trust: Default vision standard deviations (settings if None)
            settings: Fusion settings (uses defaults if None)
        """
        self.settings = settings or FusionSettings()
        self.retention_window = self.settings.retention_window_s

        self._state_trust = state_trust or TrustVector.uniform(self.settings.wheel_trust)
        self._vision_trust = vision_trust or TrustVector.of(
            self.settings.vision_translation_trust,
            self.settings.vision_rotation_trust,
        )

        self._integrator = OdometryIntegrator(kinematics, gyro_heading, module_states, initial_pose)
        self._history = PoseHistoryBuffer()
        self._correction = Pose2D()
        self._estimate = self._integrator.pose

    @property
    def kinematics(self) -> KinematicsModel:
        """Drivetrain kinematics model."""
        return self._integrator.kinematics

    @property
    def history(self) -> PoseHistoryBuffer:
        """Odometry-only pose history."""
        return self._history

    @property
    def correction(self) -> Pose2D:
        """Cumulative vision correction applied on top of odometry."""
        return self._correction

    @property
    def odometry_pose(self) -> Pose2D:
        """Latest uncorrected odometry pose."""
        return self._integrator.pose

    @property
    def state_trust(self) -> TrustVector:
        """Odometry trust (standard deviations)."""
        return self._state_trust

    @property
    def vision_trust(self) -> TrustVector:
        """Default vision trust (standard deviations)."""
        return self._vision_trust

    def set_vision_trust(self, translation: float, rotation: float) -> None:
        """Change default vision trust; larger values trust vision less."""
        self._vision_trust = TrustVector.of(translation, rotation)
        logger.debug("Vision trust set to %s", self._vision_trust)

    def get_estimate(self) -> Pose2D:
        """Current best estimate: odometry plus cumulative correction."""
        return self._estimate

    def update(
        self,
        gyro_heading: float,
        module_states: Sequence[ModuleState],
        timestamp: float,
    ) -> Pose2D:
        """Integrate one cycle of odometry.

        Args:
            gyro_heading: Current gyro reading (radians)
            module_states: Current module snapshot
            timestamp: Time of the readings in seconds

        Returns:
            Updated estimate

        Raises:
            KinematicsMismatchError: If module_states does not match the model
        """
        raw = self._integrator.update(gyro_heading, module_states)
        self._history.insert(timestamp, raw)
        self._history.prune_before(timestamp - self.retention_window)

        self._estimate = raw.offset_by(self._correction)
        return self._estimate

    def add_vision_measurement(
        self,
        pose: Pose2D,
        timestamp: float,
        trust: TrustVector | None = None,
    ) -> bool:
        """Fold a vision pose observed at a past time into the estimate.

        Args:
            pose: Robot field pose reported by vision
            timestamp: Capture time in seconds, on the same clock as update()
            trust: Per-measurement trust (engine default if None)

        Returns:
            True if the measurement was applied
        """
        newest = self._history.newest_timestamp
        if newest is None:
            logger.debug("No odometry history yet, ignoring vision measurement")
            return False

        if timestamp < newest - self.retention_window:
            logger.warning(
                "Vision measurement at %.3fs is older than the %.2fs history window, ignoring",
                timestamp,
                self.retention_window,
            )
            return False

        odometry_then = self._history.interpolate_at(timestamp)
        if odometry_then is None:
            return False
        believed = odometry_then.offset_by(self._correction)

        residual = np.array(
            [
                pose.x - believed.x,
                pose.y - believed.y,
                signed_angle_difference(pose.heading, believed.heading),
            ],
            dtype=np.float64,
        )
        step = correction_weights(self._state_trust, trust or self._vision_trust) * residual

        self._correction = Pose2D(
            self._correction.x + float(step[0]),
            self._correction.y + float(step[1]),
            self._correction.heading + float(step[2]),
        )
        self._estimate = self._integrator.pose.offset_by(self._correction)
        return True

    def add_measurement(self, measurement: VisionMeasurement) -> bool:
        """Apply a VisionMeasurement record."""
        applied = self.add_vision_measurement(
            measurement.pose, measurement.timestamp, measurement.trust
        )
        if applied:
            logger.debug("Applied vision pose from %s", measurement.source or "unknown source")
        return applied

    def reset_pose(
        self,
        gyro_heading: float,
        module_states: Sequence[ModuleState],
        pose: Pose2D,
    ) -> None:
        """Re-anchor the estimate at a known pose, dropping history and correction."""
        self._integrator.reset(gyro_heading, module_states, pose)
        self._history.clear()
        self._correction = Pose2D()
        self._estimate = pose
        logger.info("Pose reset to (%.3f, %.3f, %.3f)", pose.x, pose.y, pose.heading)
