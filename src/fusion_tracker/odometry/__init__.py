"""Odometry integration, pose history and vision fusion."""

from fusion_tracker.odometry.fusion import FusionEngine, correction_weights
from fusion_tracker.odometry.history import PoseHistoryBuffer, interpolate_pose
from fusion_tracker.odometry.integrator import OdometryIntegrator
from fusion_tracker.odometry.kinematics import KinematicsModel

__all__ = [
    "KinematicsModel",
    "OdometryIntegrator",
    "PoseHistoryBuffer",
    "interpolate_pose",
    "FusionEngine",
    "correction_weights",
]
