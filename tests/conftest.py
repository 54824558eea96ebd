"""Pytest fixtures for Fusion Tracker tests."""

from __future__ import annotations

import time
from collections.abc import Callable, Generator

import pytest

from fusion_tracker.core.config import FusionSettings, Settings, TrackerSettings
from fusion_tracker.core.types import (
    CameraConfig,
    CameraMode,
    ModuleState,
    Pose2D,
    Pose3D,
    TrustVector,
)
from fusion_tracker.odometry.fusion import FusionEngine
from fusion_tracker.odometry.kinematics import KinematicsModel
from fusion_tracker.telemetry.bus import TelemetryBus
from fusion_tracker.tracking.tracker import TrackerContext
from fusion_tracker.vision.cameras import NO_TARGET_DISTANCE, CameraSource


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FakeCamera(CameraSource):
    """Camera whose readings are set directly by the test."""

    def __init__(
        self,
        config: CameraConfig,
        bus: TelemetryBus,
        pose: Pose3D | None = None,
        distance: float = NO_TARGET_DISTANCE,
        latency: float = 0.0,
    ) -> None:
        super().__init__(config, bus)
        self.pose = pose
        self.distance = distance
        self.latency = latency
        self.fail = False
        self.delay = 0.0
        self.pose_queries = 0
        self.distance_queries = 0

    def has_target(self) -> bool:
        return self.pose is not None

    def get_pose(self) -> Pose3D | None:
        self.pose_queries += 1
        if self.fail:
            raise RuntimeError("camera exploded")
        return self.pose

    def get_latency(self) -> float:
        return self.latency

    def get_distance_from_target(self) -> float:
        self.distance_queries += 1
        if self.delay:
            time.sleep(self.delay)
        return self.distance


class FakeDrivetrain:
    """Drivetrain driving straight along its x axis."""

    def __init__(self, module_count: int = 4) -> None:
        self.gyro = 0.0
        self.distance = 0.0
        self.module_count = module_count
        self.failures_left = 0

    def get_gyro_heading(self) -> float:
        if self.failures_left > 0:
            self.failures_left -= 1
            raise RuntimeError("drivetrain read failed")
        return self.gyro

    def get_module_states(self) -> list[ModuleState]:
        return [ModuleState(self.distance, 0.0) for _ in range(self.module_count)]


def modules_at(distance: float, azimuth: float = 0.0, count: int = 4) -> list[ModuleState]:
    """Module snapshot with every wheel at the same distance and angle."""
    return [ModuleState(distance, azimuth) for _ in range(count)]


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll predicate until it is true or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.002)
    return predicate()


@pytest.fixture
def kinematics() -> KinematicsModel:
    """Square 0.6 m swerve drivetrain."""
    return KinematicsModel.rectangular(0.6, 0.6)


@pytest.fixture
def zero_modules() -> list[ModuleState]:
    """Four modules at rest."""
    return modules_at(0.0)


@pytest.fixture
def fusion_settings() -> FusionSettings:
    """Fusion settings with a 1.5 s window."""
    return FusionSettings(retention_window_s=1.5)


@pytest.fixture
def engine(
    kinematics: KinematicsModel,
    zero_modules: list[ModuleState],
    fusion_settings: FusionSettings,
) -> FusionEngine:
    """Fusion engine at the origin with odometry trust 0.1 on every axis."""
    return FusionEngine(
        kinematics,
        0.0,
        zero_modules,
        Pose2D(),
        state_trust=TrustVector.uniform(0.1),
        settings=fusion_settings,
    )


@pytest.fixture
def bus() -> TelemetryBus:
    """Fresh telemetry bus."""
    return TelemetryBus()


@pytest.fixture
def clock() -> FakeClock:
    """Manual clock starting at 10 s."""
    return FakeClock(10.0)


@pytest.fixture
def settings() -> Settings:
    """Application settings with a fast tracker loop."""
    return Settings(tracker=TrackerSettings(poll_rate_ms=5, stop_timeout_s=1.0))


@pytest.fixture
def context(bus: TelemetryBus, settings: Settings) -> Generator[TrackerContext, None, None]:
    """Tracker context shut down after the test."""
    ctx = TrackerContext(bus, settings)
    yield ctx
    ctx.shutdown()


@pytest.fixture
def odometry_camera_config() -> CameraConfig:
    """Field-pose camera with a 3 m cutoff."""
    return CameraConfig("front_cam", CameraMode.ODOMETRY, cutoff_distance=3.0)
