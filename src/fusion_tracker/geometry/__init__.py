"""Pure heading arithmetic shared by odometry, fusion and steering code."""

from fusion_tracker.geometry.angles import (
    angle_difference,
    calc_rotate_angle,
    signed_angle_difference,
    step_towards,
    step_towards_circular,
    wrap_angle,
)

__all__ = [
    "wrap_angle",
    "angle_difference",
    "signed_angle_difference",
    "step_towards",
    "step_towards_circular",
    "calc_rotate_angle",
]
