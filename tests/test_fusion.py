"""Tests for the odometry/vision fusion engine."""

from __future__ import annotations

import pytest
from conftest import modules_at

from fusion_tracker.core.exceptions import KinematicsMismatchError
from fusion_tracker.core.types import Pose2D, TrustVector, VisionMeasurement
from fusion_tracker.geometry.angles import angle_difference
from fusion_tracker.odometry.fusion import FusionEngine, correction_weights

FULL_TRUST = TrustVector.uniform(1e-12)
NO_TRUST = TrustVector.uniform(1e12)
EQUAL_TRUST = TrustVector.uniform(0.1)


def drive_forward(engine: FusionEngine, seconds: float, speed: float = 1.0) -> float:
    """Drive straight at speed in 20 ms cycles starting at t=0; returns last time."""
    cycles = round(seconds / 0.02)
    t = 0.0
    for i in range(1, cycles + 1):
        t = i * 0.02
        engine.update(0.0, modules_at(speed * t), t)
    return t


class TestUpdate:
    """Tests for odometry updates."""

    def test_stationary_cycle_keeps_origin(self, engine: FusionEngine) -> None:
        """Zero motion and zero gyro leave the estimate at the origin."""
        estimate = engine.update(0.0, modules_at(0.0), 1.0)

        assert estimate == Pose2D(0.0, 0.0, 0.0)
        assert engine.get_estimate() == estimate

    def test_records_history(self, engine: FusionEngine) -> None:
        """Each update appends an odometry sample."""
        drive_forward(engine, 0.2)
        assert len(engine.history) == 10

    def test_history_pruned_to_window(self, engine: FusionEngine) -> None:
        """Samples older than the retention window are dropped."""
        last = drive_forward(engine, 5.0)

        oldest = engine.history.oldest_timestamp
        assert oldest is not None
        assert oldest >= last - engine.retention_window

    def test_mismatch_raises(self, engine: FusionEngine) -> None:
        """Wrong module count fails at the update call."""
        with pytest.raises(KinematicsMismatchError):
            engine.update(0.0, modules_at(0.0, count=5), 1.0)


class TestVisionMeasurement:
    """Tests for folding in vision measurements."""

    def test_half_weight_scenario(self, engine: FusionEngine) -> None:
        """Equal trust moves the estimate halfway to the vision pose."""
        engine.update(0.0, modules_at(0.0), 1.0)

        applied = engine.add_vision_measurement(Pose2D(1.0, 0.0, 0.0), 1.0, EQUAL_TRUST)

        assert applied
        estimate = engine.get_estimate()
        assert estimate.x == pytest.approx(0.5)
        assert estimate.y == pytest.approx(0.0)
        assert estimate.heading == pytest.approx(0.0)

    def test_stale_measurement_ignored(self, engine: FusionEngine) -> None:
        """Measurements older than the window leave the estimate alone."""
        last = drive_forward(engine, 2.0)
        before = engine.get_estimate()

        applied = engine.add_vision_measurement(
            Pose2D(10.0, 10.0, 1.0), last - engine.retention_window - 0.1, FULL_TRUST
        )

        assert not applied
        assert engine.get_estimate() == before
        assert engine.correction == Pose2D()

    def test_no_history_ignored(self, engine: FusionEngine) -> None:
        """Without any odometry sample the measurement cannot be placed."""
        assert not engine.add_vision_measurement(Pose2D(1.0, 1.0, 0.0), 0.0, FULL_TRUST)
        assert engine.get_estimate() == Pose2D()

    def test_full_trust_snaps_to_vision(self, engine: FusionEngine) -> None:
        """Near-total confidence moves the estimate onto the vision pose."""
        engine.update(0.0, modules_at(0.0), 1.0)
        target = Pose2D(2.0, -1.0, 1.0)

        engine.add_vision_measurement(target, 1.0, FULL_TRUST)

        estimate = engine.get_estimate()
        assert estimate.x == pytest.approx(2.0, abs=1e-9)
        assert estimate.y == pytest.approx(-1.0, abs=1e-9)
        assert angle_difference(estimate.heading, 1.0) < 1e-9

    def test_no_trust_changes_nothing(self, engine: FusionEngine) -> None:
        """Near-zero confidence leaves the estimate where it was."""
        engine.update(0.0, modules_at(0.0), 1.0)

        engine.add_vision_measurement(Pose2D(2.0, -1.0, 1.0), 1.0, NO_TRUST)

        estimate = engine.get_estimate()
        assert estimate.x == pytest.approx(0.0, abs=1e-9)
        assert estimate.y == pytest.approx(0.0, abs=1e-9)
        assert angle_difference(estimate.heading, 0.0) < 1e-9

    def test_compares_against_pose_at_capture_time(self, engine: FusionEngine) -> None:
        """A delayed measurement agreeing with past odometry causes no correction."""
        drive_forward(engine, 1.0)
        assert engine.get_estimate().x == pytest.approx(1.0)

        engine.add_vision_measurement(Pose2D(0.5, 0.0, 0.0), 0.5, FULL_TRUST)

        assert engine.get_estimate().x == pytest.approx(1.0, abs=1e-6)
        assert engine.correction.x == pytest.approx(0.0, abs=1e-6)

    def test_delayed_offset_applies_to_now(self, engine: FusionEngine) -> None:
        """An offset seen in the past shifts the current estimate by that offset."""
        drive_forward(engine, 1.0)

        engine.add_vision_measurement(Pose2D(0.5, 0.3, 0.0), 0.5, FULL_TRUST)

        estimate = engine.get_estimate()
        assert estimate.x == pytest.approx(1.0, abs=1e-6)
        assert estimate.y == pytest.approx(0.3, abs=1e-6)

    def test_correction_carries_forward(self, engine: FusionEngine) -> None:
        """Later odometry keeps the accumulated correction."""
        engine.update(0.0, modules_at(0.0), 0.02)
        engine.add_vision_measurement(Pose2D(1.0, 0.0, 0.0), 0.02, FULL_TRUST)

        engine.update(0.0, modules_at(0.5), 0.04)

        assert engine.get_estimate().x == pytest.approx(1.5, abs=1e-9)
        assert engine.odometry_pose.x == pytest.approx(0.5)

    def test_past_history_not_rewritten(self, engine: FusionEngine) -> None:
        """Corrections leave stored odometry samples untouched."""
        drive_forward(engine, 0.2)
        before = engine.history.samples()

        engine.add_vision_measurement(Pose2D(5.0, 5.0, 0.0), 0.1, FULL_TRUST)

        assert engine.history.samples() == before

    def test_repeated_measurements_converge(self, engine: FusionEngine) -> None:
        """Identical measurements approach the vision pose without overshooting."""
        engine.update(0.0, modules_at(0.0), 1.0)

        previous = 0.0
        for _ in range(30):
            engine.add_vision_measurement(Pose2D(1.0, 0.0, 0.0), 1.0, EQUAL_TRUST)
            x = engine.get_estimate().x
            assert previous <= x <= 1.0
            previous = x

        assert previous == pytest.approx(1.0, abs=1e-6)

    def test_heading_residual_uses_shortest_path(self, engine: FusionEngine) -> None:
        """Heading correction goes across zero rather than the long way."""
        engine.update(0.1, modules_at(0.0), 1.0)

        engine.add_vision_measurement(Pose2D(0.0, 0.0, 6.2), 1.0, EQUAL_TRUST)

        heading = engine.get_estimate().heading
        expected_gap = angle_difference(0.1, 6.2) / 2
        assert angle_difference(heading, 0.1) == pytest.approx(expected_gap)
        assert angle_difference(heading, 6.2) == pytest.approx(expected_gap)

    def test_axes_weighted_independently(self, engine: FusionEngine) -> None:
        """Translation and heading trust apply separately."""
        engine.update(0.0, modules_at(0.0), 1.0)

        engine.add_vision_measurement(Pose2D(1.0, 1.0, 0.5), 1.0, TrustVector(1e-12, 1e12, 0.1))

        estimate = engine.get_estimate()
        assert estimate.x == pytest.approx(1.0, abs=1e-9)
        assert estimate.y == pytest.approx(0.0, abs=1e-9)
        assert estimate.heading == pytest.approx(0.25)

    def test_default_vision_trust(self, engine: FusionEngine) -> None:
        """Without an override the engine's vision trust is used."""
        engine.update(0.0, modules_at(0.0), 1.0)
        engine.set_vision_trust(0.1, 0.1)

        engine.add_measurement(VisionMeasurement(1.0, Pose2D(1.0, 0.0, 0.0), source="cam"))

        assert engine.get_estimate().x == pytest.approx(0.5)


class TestResetAndTrust:
    """Tests for pose reset and trust helpers."""

    def test_reset_pose(self, engine: FusionEngine) -> None:
        """Reset drops history and correction."""
        drive_forward(engine, 0.5)
        engine.add_vision_measurement(Pose2D(3.0, 3.0, 0.0), 0.5, FULL_TRUST)

        engine.reset_pose(0.0, modules_at(0.5), Pose2D(1.0, 2.0, 0.3))

        assert engine.get_estimate() == Pose2D(1.0, 2.0, 0.3)
        assert engine.correction == Pose2D()
        assert len(engine.history) == 0

    def test_set_vision_trust(self, engine: FusionEngine) -> None:
        """Vision trust can be changed at runtime."""
        engine.set_vision_trust(0.4, 2.0)
        assert engine.vision_trust == TrustVector(0.4, 0.4, 2.0)

    def test_weights(self) -> None:
        """weight = state / (state + measurement), even split when both are zero."""
        weights = correction_weights(TrustVector(0.1, 0.0, 0.3), TrustVector(0.3, 0.0, 0.1))

        assert weights[0] == pytest.approx(0.25)
        assert weights[1] == pytest.approx(0.5)
        assert weights[2] == pytest.approx(0.75)

    def test_negative_trust_rejected(self) -> None:
        """Trust values must be non-negative."""
        with pytest.raises(ValueError):
            TrustVector(-0.1, 0.1, 0.1)
