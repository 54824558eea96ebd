"""Time-ordered history of odometry-only poses."""

from __future__ import annotations

import bisect

from fusion_tracker.core.logging import get_logger
from fusion_tracker.core.types import Pose2D, PoseSample
from fusion_tracker.geometry.angles import signed_angle_difference

logger = get_logger(__name__)


def interpolate_pose(start: Pose2D, end: Pose2D, fraction: float) -> Pose2D:
    """Blend two poses; heading follows the shorter arc.

    Args:
        start: Pose at fraction 0
        end: Pose at fraction 1
        fraction: Position between the poses, clamped to [0, 1]
    """
    fraction = min(max(fraction, 0.0), 1.0)
    return Pose2D(
        start.x + (end.x - start.x) * fraction,
        start.y + (end.y - start.y) * fraction,
        start.heading + signed_angle_difference(end.heading, start.heading) * fraction,
    )


class PoseHistoryBuffer:
    """Sorted buffer of PoseSample entries.

    Samples must arrive with strictly increasing timestamps; anything else is
    dropped. Memory is bounded by pruning against the retention window.
    """

    def __init__(self) -> None:
        self._timestamps: list[float] = []
        self._samples: list[PoseSample] = []
        self._discarded = 0

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def oldest_timestamp(self) -> float | None:
        """Timestamp of the oldest retained sample."""
        return self._timestamps[0] if self._timestamps else None

    @property
    def newest_timestamp(self) -> float | None:
        """Timestamp of the newest retained sample."""
        return self._timestamps[-1] if self._timestamps else None

    @property
    def discarded_count(self) -> int:
        """Number of out-of-order inserts rejected so far."""
        return self._discarded

    def samples(self) -> list[PoseSample]:
        """Copy of the retained samples, oldest first."""
        return list(self._samples)

    def insert(self, timestamp: float, pose: Pose2D) -> bool:
        """Append a sample.

        Args:
            timestamp: Sample time in seconds
            pose: Odometry-only pose at that time

        Returns:
            True if stored, False if discarded as out of order or duplicate
        """
        if self._timestamps and timestamp <= self._timestamps[-1]:
            self._discarded += 1
            logger.warning(
                "Discarding pose sample at %.4fs (newest is %.4fs)",
                timestamp,
                self._timestamps[-1],
            )
            return False

        self._timestamps.append(timestamp)
        self._samples.append(PoseSample(timestamp, pose))
        return True

    def interpolate_at(self, timestamp: float) -> Pose2D | None:
        """Estimate the odometry pose at a past time.

        Times outside the retained range clamp to the oldest/newest sample.

        Returns:
            Interpolated pose, or None if the buffer is empty
        """
        if not self._samples:
            return None

        index = bisect.bisect_left(self._timestamps, timestamp)

        if index == 0:
            return self._samples[0].pose
        if index == len(self._samples):
            return self._samples[-1].pose

        upper = self._samples[index]
        if upper.timestamp == timestamp:
            return upper.pose

        lower = self._samples[index - 1]
        fraction = (timestamp - lower.timestamp) / (upper.timestamp - lower.timestamp)
        return interpolate_pose(lower.pose, upper.pose, fraction)

    def prune_before(self, timestamp: float) -> int:
        """Drop samples older than timestamp.

        Returns:
            Number of samples removed
        """
        index = bisect.bisect_left(self._timestamps, timestamp)
        if index:
            del self._timestamps[:index]
            del self._samples[:index]
        return index

    def clear(self) -> None:
        """Remove all samples."""
        self._timestamps.clear()
        self._samples.clear()
