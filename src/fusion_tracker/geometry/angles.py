"""Wrap-safe heading arithmetic.

All functions work in radians. Canonical headings lie in [0, 2*pi).
This module is pure logic with NO I/O.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fusion_tracker.core.types import Pose2D

TWO_PI = 2 * math.pi


def wrap_angle(angle: float) -> float:
    """Wrap an angle into [0, 2*pi).

    Args:
        angle: Angle in radians, may lie several turns outside the range

    Returns:
        Equivalent angle in [0, 2*pi)
    """
    if 0.0 <= angle < TWO_PI:
        return angle

    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI

    # Tiny negative remainders round up to exactly 2*pi
    return 0.0 if wrapped >= TWO_PI else wrapped


def angle_difference(angle_a: float, angle_b: float) -> float:
    """Unsigned minimal difference between two angles, in [0, pi]."""
    difference = abs(wrap_angle(angle_a) - wrap_angle(angle_b))
    return TWO_PI - difference if difference > math.pi else difference


def signed_angle_difference(angle_a: float, angle_b: float) -> float:
    """Shortest signed rotation taking angle_b onto angle_a, in (-pi, pi]."""
    difference = wrap_angle(angle_a) - wrap_angle(angle_b)
    if difference > math.pi:
        difference -= TWO_PI
    elif difference <= -math.pi:
        difference += TWO_PI
    return difference


def step_towards(current: float, target: float, step: float) -> float:
    """Move a value towards a target by at most step.

    Args:
        current: Starting value
        target: Value to approach
        step: Maximum change allowed

    Returns:
        target if it is within step, otherwise current moved by step
    """
    if abs(current - target) <= step:
        return target
    if target < current:
        return current - step
    return current + step


def step_towards_circular(current: float, target: float, step: float) -> float:
    """Move an angle towards a target angle along the shorter direction.

    Args:
        current: Starting angle, any range
        target: Angle to approach, any range
        step: Maximum rotation allowed (radians)

    Returns:
        New angle in [0, 2*pi); never past the target
    """
    current = wrap_angle(current)
    target = wrap_angle(target)
    direction = math.copysign(1.0, target - current)
    difference = abs(current - target)

    if difference <= step:
        return target

    if difference > math.pi:
        # Shorter path crosses the 0/2*pi seam
        if current + TWO_PI - target <= step or target + TWO_PI - current <= step:
            return target
        return wrap_angle(current - direction * step)

    return current + direction * step


def calc_rotate_angle(from_pose: Pose2D, to_pose: Pose2D) -> float:
    """Heading that makes from_pose face to_pose, in [0, 2*pi)."""
    return wrap_angle(math.atan2(to_pose.y - from_pose.y, to_pose.x - from_pose.x))
