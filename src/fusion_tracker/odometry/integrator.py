"""Wheel/gyro odometry integration.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from fusion_tracker.core.types import ModuleState, Pose2D, Twist2D
from fusion_tracker.geometry.angles import signed_angle_difference, wrap_angle
from fusion_tracker.odometry.kinematics import KinematicsModel


class OdometryIntegrator:
    """Accumulates per-cycle module motion into a raw field-frame pose.

    Heading always comes from the gyro so wheel slip cannot drift it; the
    kinematics model only supplies translation.
    """

    def __init__(
        self,
        kinematics: KinematicsModel,
        gyro_heading: float,
        module_states: Sequence[ModuleState],
        initial_pose: Pose2D | None = None,
    ) -> None:
        """Initialize integrator at a known pose.

        Args:
            kinematics: Drivetrain kinematics model
            gyro_heading: Current gyro reading (radians, unbounded)
            module_states: Current module snapshot
            initial_pose: Starting field pose (origin if None)

        Raises:
            KinematicsMismatchError: If module_states does not match the model
        """
        self.kinematics = kinematics
        self._pose = Pose2D()
        self._previous: tuple[ModuleState, ...] = ()
        self._gyro_offset = 0.0
        self._twist = Twist2D()
        self.reset(gyro_heading, module_states, initial_pose or Pose2D())

    @property
    def pose(self) -> Pose2D:
        """Latest raw odometry pose."""
        return self._pose

    @property
    def twist(self) -> Twist2D:
        """Robot-frame motion computed by the latest update."""
        return self._twist

    def reset(
        self,
        gyro_heading: float,
        module_states: Sequence[ModuleState],
        pose: Pose2D,
    ) -> None:
        """Re-anchor odometry at a pose.

        The gyro offset is chosen so the current gyro reading maps to pose.heading.
        """
        self.kinematics.check_modules(module_states)
        self._previous = tuple(module_states)
        self._gyro_offset = pose.heading - gyro_heading
        self._pose = pose
        self._twist = Twist2D()

    def update(self, gyro_heading: float, module_states: Sequence[ModuleState]) -> Pose2D:
        """Integrate one cycle of odometry.

        Args:
            gyro_heading: Current gyro reading (radians, unbounded)
            module_states: Current module snapshot

        Returns:
            Updated raw pose

        Raises:
            KinematicsMismatchError: If module_states does not match the model
        """
        twist = self.kinematics.to_twist(self._previous, module_states)
        heading = wrap_angle(gyro_heading + self._gyro_offset)

        cos_h = math.cos(heading)
        sin_h = math.sin(heading)
        field_dx = twist.dx * cos_h - twist.dy * sin_h
        field_dy = twist.dx * sin_h + twist.dy * cos_h

        self._twist = Twist2D(
            twist.dx, twist.dy, signed_angle_difference(heading, self._pose.heading)
        )
        self._pose = Pose2D(self._pose.x + field_dx, self._pose.y + field_dy, heading)
        self._previous = tuple(module_states)

        return self._pose
