"""Periodic pose tracker orchestration."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import Protocol

from fusion_tracker.core.config import Settings, TrackerSettings, get_settings
from fusion_tracker.core.exceptions import TrackerNotInitializedError
from fusion_tracker.core.logging import get_logger
from fusion_tracker.core.types import (
    CameraMode,
    ModuleState,
    Pose2D,
    TrustVector,
    VisionMeasurement,
)
from fusion_tracker.odometry.fusion import FusionEngine
from fusion_tracker.odometry.kinematics import KinematicsModel
from fusion_tracker.telemetry.bus import TelemetryBus
from fusion_tracker.telemetry.tuning import TuningStore
from fusion_tracker.vision.cameras import CameraSource

logger = get_logger(__name__)

POLL_RATE_KEY = "tracker_poll_rate_ms"
ESTIMATED_POSE_KEY = "Estimated Pose"


def cutoff_key(camera_name: str) -> str:
    """Tunable name holding a camera's odometry cutoff distance."""
    return f"{camera_name}_odometry_cutoff_distance"


class DrivetrainSource(Protocol):
    """Supplies odometry inputs each cycle."""

    def get_gyro_heading(self) -> float:
        """Gyro heading in radians (continuous, unbounded)."""
        ...

    def get_module_states(self) -> Sequence[ModuleState]:
        """Current snapshot of every module."""
        ...


class Tracker:
    """Runs fusion on a fixed-rate background thread and publishes the pose.

    The worker thread is the only writer of fusion state. The published pose
    is a frozen Pose2D replaced by a single assignment, so readers on other
    threads always see a complete pose. Cameras must be added before start().
    """

    def __init__(
        self,
        engine: FusionEngine,
        bus: TelemetryBus,
        gyro_heading: float,
        module_states: Sequence[ModuleState],
        drivetrain: DrivetrainSource | None = None,
        settings: TrackerSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize tracker.

        Args:
            engine: Fusion engine to drive
            bus: Telemetry bus for publishing and tunables
            gyro_heading: Initial gyro reading
            module_states: Initial module snapshot
            drivetrain: Polled each cycle; if None, inputs come from update()
            settings: Tracker settings (uses defaults if None)
            clock: Time source in seconds, shared by odometry and vision timestamps
        """
        self.settings = settings or TrackerSettings()
        self._engine = engine
        self._drivetrain = drivetrain
        self._clock = clock

        self._table = bus.get_table(self.settings.telemetry_table)
        self._tuning = TuningStore(bus)
        self._cameras: list[CameraSource] = []

        self._inputs: tuple[float, tuple[ModuleState, ...]] = (gyro_heading, tuple(module_states))
        self._pending_reset: Pose2D | None = None
        self._pose = engine.get_estimate()

        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._period_s = self.settings.poll_rate_ms / 1000.0
        self._cycle_count = 0
        self._failed_cycles = 0

    @property
    def engine(self) -> FusionEngine:
        """Underlying fusion engine."""
        return self._engine

    @property
    def tuning(self) -> TuningStore:
        """Tunables used by the tracker."""
        return self._tuning

    @property
    def cameras(self) -> list[CameraSource]:
        """Registered cameras (copy)."""
        return list(self._cameras)

    @property
    def is_running(self) -> bool:
        """Whether the background cycle is active and not asked to stop."""
        return self._worker_alive() and not self._stop_event.is_set()

    def _worker_alive(self) -> bool:
        """Whether a worker thread exists, including one still finishing after stop()."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def period_s(self) -> float:
        """Cycle period in seconds."""
        return self._period_s

    @property
    def cycle_count(self) -> int:
        """Cycles completed without error."""
        return self._cycle_count

    @property
    def failed_cycles(self) -> int:
        """Cycles that raised an exception."""
        return self._failed_cycles

    def add_camera(self, camera: CameraSource) -> None:
        """Register a camera. Only safe before start()."""
        if self._worker_alive():
            logger.warning("Adding camera %s while the tracker is running", camera.name)
        self._cameras.append(camera)
        logger.info("Added camera %s (%s mode)", camera.name, camera.get_mode().name)

    def update(self, gyro_heading: float, module_states: Sequence[ModuleState]) -> None:
        """Provide the latest drivetrain readings for the next cycle.

        Raises:
            KinematicsMismatchError: If module_states does not match the model
        """
        self._engine.kinematics.check_modules(module_states)
        self._inputs = (gyro_heading, tuple(module_states))

    def set_vision_trust(self, translation: float, rotation: float) -> None:
        """Change default vision trust; larger values trust vision less."""
        self._engine.set_vision_trust(translation, rotation)

    def reset_pose(self, pose: Pose2D) -> None:
        """Re-anchor the estimate; applied by the next cycle while a worker exists."""
        if self._worker_alive():
            self._pending_reset = pose
            return
        gyro_heading, module_states = self._read_drivetrain()
        self._engine.reset_pose(gyro_heading, module_states, pose)
        self._pose = pose

    def get_pose(self) -> Pose2D:
        """Last published estimate."""
        return self._pose

    def start(self) -> bool:
        """Launch the periodic cycle.

        Each worker gets its own stop event, so a worker that outlived a
        timed-out stop() is never revived. Starting is refused until it exits.

        Returns:
            True if a worker is running afterwards
        """
        if self.is_running:
            logger.warning("Tracker is already running")
            return True
        if self._worker_alive():
            logger.warning("Previous tracker thread is still finishing, not starting a new one")
            return False

        default_ms = float(self.settings.poll_rate_ms)
        poll_rate_ms = self._tuning.get(POLL_RATE_KEY, float, default_ms)
        if poll_rate_ms <= 0:
            logger.warning("Invalid %s=%g, using %g", POLL_RATE_KEY, poll_rate_ms, default_ms)
            poll_rate_ms = default_ms
        self._period_s = poll_rate_ms / 1000.0

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="tracker", daemon=True
        )
        self._thread.start()
        logger.info(
            "Tracker started (%g ms period, %d cameras)", poll_rate_ms, len(self._cameras)
        )
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """Stop the periodic cycle, waiting a bounded time for it to finish.

        Args:
            timeout: Seconds to wait (settings stop_timeout_s if None)

        Returns:
            True if the worker finished within the timeout
        """
        self._stop_event.set()
        thread = self._thread
        if thread is None:
            return True
        if thread is threading.current_thread():
            return False

        thread.join(self.settings.stop_timeout_s if timeout is None else timeout)
        if thread.is_alive():
            logger.warning("Tracker thread did not terminate in the allocated time")
            return False

        self._thread = None
        logger.info(
            "Tracker stopped after %d cycles (%d failed)", self._cycle_count, self._failed_cycles
        )
        return True

    def run_cycle(self) -> Pose2D:
        """Run one fusion cycle synchronously and publish the result."""
        now = self._clock()

        pending = self._pending_reset
        if pending is not None:
            self._pending_reset = None
            gyro_heading, module_states = self._read_drivetrain()
            self._engine.reset_pose(gyro_heading, module_states, pending)

        gyro_heading, module_states = self._read_drivetrain()
        self._engine.update(gyro_heading, module_states, now)

        for camera in self._cameras:
            try:
                self._process_camera(camera, now)
            except Exception:
                logger.exception("Camera %s failed during tracker cycle", camera.name)

        pose = self._engine.get_estimate()
        self._pose = pose
        self._table.set_double_array(ESTIMATED_POSE_KEY, [pose.x, pose.y])
        self._cycle_count += 1
        return pose

    def _read_drivetrain(self) -> tuple[float, tuple[ModuleState, ...]]:
        if self._drivetrain is None:
            return self._inputs
        return self._drivetrain.get_gyro_heading(), tuple(self._drivetrain.get_module_states())

    def _process_camera(self, camera: CameraSource, now: float) -> None:
        """Feed one camera's pose into the engine if it is usable."""
        if camera.get_mode() != CameraMode.ODOMETRY:
            return

        cutoff = self._tuning.get(cutoff_key(camera.name), float, camera.config.cutoff_distance)

        started = time.perf_counter()
        distance = camera.get_distance_from_target()
        if distance >= cutoff:
            return

        pose = camera.get_pose()
        latency = camera.get_latency()

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if elapsed_ms > self.settings.camera_query_warn_ms:
            logger.warning("Camera %s took %.1f ms to query", camera.name, elapsed_ms)

        if pose is None:
            return

        self._engine.add_measurement(
            VisionMeasurement(
                timestamp=now - latency,
                pose=pose.to_pose2d(),
                source=camera.name,
            )
        )

    def _run(self, stop_event: threading.Event) -> None:
        """Fixed-rate loop; overruns skip slots rather than overlap."""
        next_deadline = time.monotonic()

        while not stop_event.is_set():
            try:
                self.run_cycle()
            except Exception:
                self._failed_cycles += 1
                logger.exception("Tracker cycle failed")

            next_deadline += self._period_s
            now = time.monotonic()
            if now > next_deadline:
                missed = int((now - next_deadline) // self._period_s) + 1
                next_deadline += missed * self._period_s
                logger.debug("Tracker cycle overran, skipping %d slot(s)", missed)

            stop_event.wait(next_deadline - now)


class TrackerContext:
    """Owns the single Tracker of a process and the bus it publishes on."""

    def __init__(
        self,
        bus: TelemetryBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize context.

        Args:
            bus: Telemetry bus (a fresh one if None)
            settings: Application settings (cached settings if None)
        """
        self.bus = bus or TelemetryBus()
        self.settings = settings or get_settings()
        self._tracker: Tracker | None = None
        self._lock = threading.Lock()

    def create(
        self,
        kinematics: KinematicsModel,
        gyro_heading: float,
        module_states: Sequence[ModuleState],
        initial_pose: Pose2D | None = None,
        wheel_trust: float | None = None,
        vision_translation_trust: float | None = None,
        vision_rotation_trust: float | None = None,
        drivetrain: DrivetrainSource | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> Tracker:
        """Create the tracker, or return the existing one with a warning.

        Trust values are standard deviations (larger = trusted less); None
        falls back to the fusion settings.

        Raises:
            KinematicsMismatchError: If module_states does not match kinematics
        """
        with self._lock:
            if self._tracker is not None:
                logger.warning("A tracker already exists, returning it instead")
                return self._tracker

            fusion = self.settings.fusion
            engine = FusionEngine(
                kinematics,
                gyro_heading,
                module_states,
                initial_pose,
                state_trust=TrustVector.uniform(
                    fusion.wheel_trust if wheel_trust is None else wheel_trust
                ),
                vision_trust=TrustVector.of(
                    fusion.vision_translation_trust
                    if vision_translation_trust is None
                    else vision_translation_trust,
                    fusion.vision_rotation_trust
                    if vision_rotation_trust is None
                    else vision_rotation_trust,
                ),
                settings=fusion,
            )
            self._tracker = Tracker(
                engine,
                self.bus,
                gyro_heading,
                module_states,
                drivetrain=drivetrain,
                settings=self.settings.tracker,
                clock=clock,
            )
            logger.info("Tracker created")
            return self._tracker

    def get_instance(self) -> Tracker | None:
        """The tracker, or None (with an error log) if create() was never called."""
        if self._tracker is None:
            logger.error("There is no tracker, call create() first")
        return self._tracker

    def require(self) -> Tracker:
        """The tracker.

        Raises:
            TrackerNotInitializedError: If create() was never called
        """
        if self._tracker is None:
            raise TrackerNotInitializedError()
        return self._tracker

    def shutdown(self) -> None:
        """Stop and discard the tracker."""
        with self._lock:
            tracker, self._tracker = self._tracker, None
        if tracker is not None:
            tracker.stop()


@lru_cache
def get_context() -> TrackerContext:
    """Get the process-wide tracker context."""
    return TrackerContext()
