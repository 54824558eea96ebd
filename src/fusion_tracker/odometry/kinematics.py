"""Swerve-style drivetrain kinematics.

This module is pure logic with NO I/O.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from fusion_tracker.core.exceptions import KinematicsMismatchError
from fusion_tracker.core.types import ModuleState, Twist2D


class KinematicsModel:
    """Maps wheel module motion to robot motion.

    Each module sits at a fixed (x, y) offset from the robot center. The
    inverse kinematics matrix maps a robot twist (dx, dy, dtheta) to per-module
    displacement vectors; the forward direction is its least-squares solution.
    """

    def __init__(self, module_offsets: Sequence[tuple[float, float]]) -> None:
        """Initialize with module positions.

        Args:
            module_offsets: (x, y) offset of each module from robot center in meters

        Raises:
            ValueError: If no modules are given
        """
        if not module_offsets:
            raise ValueError("Kinematics model needs at least one module")

        self._offsets: tuple[tuple[float, float], ...] = tuple(
            (float(x), float(y)) for x, y in module_offsets
        )

        rows = []
        for x, y in self._offsets:
            rows.append([1.0, 0.0, -y])
            rows.append([0.0, 1.0, x])

        self._inverse: NDArray[np.floating[Any]] = np.array(rows, dtype=np.float64)
        self._forward: NDArray[np.floating[Any]] = np.linalg.pinv(self._inverse)

    @property
    def module_count(self) -> int:
        """Number of modules this model was built for."""
        return len(self._offsets)

    @property
    def module_offsets(self) -> tuple[tuple[float, float], ...]:
        """Module positions relative to robot center."""
        return self._offsets

    def check_modules(self, modules: Sequence[ModuleState]) -> None:
        """Ensure a module-state snapshot matches this model.

        Raises:
            KinematicsMismatchError: If the module count differs
        """
        if len(modules) != self.module_count:
            raise KinematicsMismatchError(
                f"Expected {self.module_count} module states, got {len(modules)}"
            )

    def to_twist(
        self,
        start: Sequence[ModuleState],
        end: Sequence[ModuleState],
    ) -> Twist2D:
        """Compute robot-frame motion between two module snapshots.

        Args:
            start: Module states at the beginning of the interval
            end: Module states at the end of the interval

        Returns:
            Least-squares robot twist explaining the module displacements

        Raises:
            KinematicsMismatchError: If either snapshot has the wrong module count
        """
        self.check_modules(start)
        self.check_modules(end)

        displacements = np.empty(2 * self.module_count, dtype=np.float64)
        for i, (before, after) in enumerate(zip(start, end)):
            delta = after.distance - before.distance
            displacements[2 * i] = delta * math.cos(after.azimuth)
            displacements[2 * i + 1] = delta * math.sin(after.azimuth)

        dx, dy, dtheta = (float(v) for v in self._forward @ displacements)
        return Twist2D(dx, dy, dtheta)

    @classmethod
    def rectangular(cls, wheelbase: float, track_width: float) -> KinematicsModel:
        """Four modules at the corners of a rectangle.

        Order: front-left, front-right, back-left, back-right.
        """
        half_base = wheelbase / 2
        half_track = track_width / 2
        return cls(
            [
                (half_base, half_track),
                (half_base, -half_track),
                (-half_base, half_track),
                (-half_base, -half_track),
            ]
        )
