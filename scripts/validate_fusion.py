#!/usr/bin/env python3
"""Validate fusion accuracy on a simulated drive.

Drives a simulated four-module robot around a circle with wheel slip and
gyro drift, feeds a delayed, noisy field-pose camera, and compares the
odometry-only and fused pose errors against ground truth.
"""

from __future__ import annotations

import argparse
import csv
import math
import sys
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from fusion_tracker.core.config import get_settings
from fusion_tracker.core.logging import get_logger, setup_logging
from fusion_tracker.core.types import CameraConfig, CameraMode, ModuleState, Pose2D
from fusion_tracker.odometry.kinematics import KinematicsModel
from fusion_tracker.telemetry.bus import TelemetryBus
from fusion_tracker.tracking.tracker import TrackerContext
from fusion_tracker.vision.cameras import FieldPoseCamera

logger = get_logger(__name__)


@dataclass
class CycleRecord:
    """Errors for one simulated cycle."""

    time_s: float
    truth: Pose2D
    odometry_error_m: float
    fused_error_m: float


class SimulatedDrivetrain:
    """Holonomic robot with slipping wheels and a drifting gyro."""

    def __init__(
        self,
        kinematics: KinematicsModel,
        slip: float,
        gyro_drift_rad_s: float,
    ) -> None:
        self.kinematics = kinematics
        self.slip = slip
        self.gyro_drift = gyro_drift_rad_s
        self.truth = Pose2D()
        self._distances = [0.0] * kinematics.module_count
        self._azimuths = [0.0] * kinematics.module_count
        self._gyro = 0.0

    def get_gyro_heading(self) -> float:
        return self._gyro

    def get_module_states(self) -> list[ModuleState]:
        return [ModuleState(d, a) for d, a in zip(self._distances, self._azimuths)]

    def step(self, vx: float, vy: float, omega: float, dt: float) -> None:
        """Advance the true pose and the sensor readings by dt."""
        for i, (mx, my) in enumerate(self.kinematics.module_offsets):
            module_vx = vx - omega * my
            module_vy = vy + omega * mx
            speed = math.hypot(module_vx, module_vy)
            self._azimuths[i] = math.atan2(module_vy, module_vx)
            self._distances[i] += speed * dt * (1.0 + self.slip)

        heading = self.truth.heading + omega * dt
        cos_h, sin_h = math.cos(heading), math.sin(heading)
        self.truth = Pose2D(
            self.truth.x + (vx * cos_h - vy * sin_h) * dt,
            self.truth.y + (vx * sin_h + vy * cos_h) * dt,
            heading,
        )
        self._gyro += (omega + self.gyro_drift) * dt


def run_simulation(
    duration_s: float,
    camera_period_cycles: int,
    camera_latency_s: float,
    camera_noise_m: float,
    seed: int,
) -> list[CycleRecord]:
    """Run the simulated drive and record errors each cycle."""
    settings = get_settings()
    dt = settings.tracker.poll_rate_ms / 1000.0
    rng = np.random.default_rng(seed)

    kinematics = KinematicsModel.rectangular(0.6, 0.6)
    drivetrain = SimulatedDrivetrain(kinematics, slip=0.03, gyro_drift_rad_s=0.002)

    sim_time = 0.0
    bus = TelemetryBus()
    context = TrackerContext(bus, settings)
    tracker = context.create(
        kinematics,
        drivetrain.get_gyro_heading(),
        drivetrain.get_module_states(),
        drivetrain=drivetrain,
        clock=lambda: sim_time,
    )
    camera_config = CameraConfig(
        "sim_cam", CameraMode.ODOMETRY, cutoff_distance=settings.camera.default_cutoff_distance
    )
    camera = FieldPoseCamera(camera_config, bus)
    tracker.add_camera(camera)

    latency_cycles = max(0, round(camera_latency_s / dt))
    truth_history: list[Pose2D] = []
    records: list[CycleRecord] = []

    cycles = int(duration_s / dt)
    for cycle in range(cycles):
        sim_time = cycle * dt
        drivetrain.step(1.0, 0.0, 0.5, dt)
        truth_history.append(drivetrain.truth)

        has_frame = cycle % camera_period_cycles == 0 and cycle >= latency_cycles
        if has_frame:
            seen = truth_history[cycle - latency_cycles]
            noise = rng.normal(0.0, camera_noise_m, size=2)
            camera.table.set_integer("tv", 1)
            bot_pose = [seen.x + noise[0], seen.y + noise[1], 0.0, 0.0, 0.0, seen.heading]
            camera.table.set_double_array("botpose_wpiblue", bot_pose)
            camera.table.set_double_array("targetpose_cameraspace", [2.0, 0.0, 0.0, 0.0, 0.0, 0.0])
            camera.table.set_double("tl", camera_latency_s * 1000.0)
            camera.table.set_double("cl", 0.0)
        else:
            camera.table.set_integer("tv", 0)

        fused = tracker.run_cycle()
        odometry = tracker.engine.odometry_pose
        records.append(
            CycleRecord(
                time_s=sim_time,
                truth=drivetrain.truth,
                odometry_error_m=odometry.distance_to(drivetrain.truth),
                fused_error_m=fused.distance_to(drivetrain.truth),
            )
        )

    context.shutdown()
    return records


def print_results(records: list[CycleRecord]) -> None:
    """Print error summary to console."""
    odometry = np.array([r.odometry_error_m for r in records])
    fused = np.array([r.fused_error_m for r in records])

    print("\n" + "=" * 50)
    print("FUSION VALIDATION")
    print("=" * 50)
    print(f"Cycles simulated:        {len(records)}")
    print(f"Odometry RMS error:      {float(np.sqrt(np.mean(odometry**2))):.3f} m")
    print(f"Fused RMS error:         {float(np.sqrt(np.mean(fused**2))):.3f} m")
    print(f"Odometry final error:    {odometry[-1]:.3f} m")
    print(f"Fused final error:       {fused[-1]:.3f} m")
    print("=" * 50)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate pose fusion on a simulated drive")
    parser.add_argument("--duration", type=float, default=30.0, help="Simulated seconds")
    parser.add_argument("--camera-period", type=int, default=5, help="Cycles between camera frames")
    parser.add_argument("--latency", type=float, default=0.06, help="Camera latency in seconds")
    parser.add_argument("--noise", type=float, default=0.05, help="Camera position noise (m)")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    parser.add_argument("--output", "-o", type=Path, help="CSV file for per-cycle errors")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)

    if args.camera_period <= 0:
        logger.error("--camera-period must be positive")
        return 1

    records = run_simulation(args.duration, args.camera_period, args.latency, args.noise, args.seed)
    print_results(records)

    if args.output:
        with open(args.output, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["time_s", "true_x", "true_y", "odometry_error_m", "fused_error_m"])
            for r in records:
                writer.writerow(
                    [r.time_s, r.truth.x, r.truth.y, r.odometry_error_m, r.fused_error_m]
                )
        logger.info("Results saved to %s", args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
