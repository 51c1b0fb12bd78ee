from datetime import datetime, timedelta
from threading import Lock
from typing import Optional, Tuple

from src.momentum.domain.exceptions import MomentumConfigurationError


class TimeWindowIndex:
    """
    Splits a timeframe into `interval_count` equal buckets ending at the anchor
    ("now" at construction) and maps timestamps to bucket start boundaries.

    The anchor only ever moves forward in whole bucket widths, so bucket keys
    handed out before an advance stay valid afterwards.
    """

    def __init__(self, span: timedelta, interval_count: int, now: datetime):
        if span <= timedelta(0):
            raise MomentumConfigurationError(f"Timeframe span must be positive, got {span}")
        if interval_count <= 0:
            raise MomentumConfigurationError(f"Interval count must be positive, got {interval_count}")
        if now.tzinfo is None:
            raise MomentumConfigurationError("TimeWindowIndex requires timezone-aware datetime")

        self.span = span
        self.interval_count = interval_count
        self.width = span / interval_count
        if self.width <= timedelta(0):
            raise MomentumConfigurationError(
                f"Timeframe {span} is too short for {interval_count} intervals"
            )
        self._anchor = now
        self._lock = Lock()

    @property
    def anchor(self) -> datetime:
        return self._anchor

    @property
    def oldest_boundary(self) -> datetime:
        return self._anchor - self.interval_count * self.width

    @property
    def latest_boundary(self) -> datetime:
        return self._anchor - self.width

    def boundaries(self) -> Tuple[datetime, ...]:
        oldest = self.oldest_boundary
        return tuple(oldest + i * self.width for i in range(self.interval_count))

    def bucket_key_for(self, timestamp: datetime) -> Optional[datetime]:
        """
        Returns the start boundary of the bucket holding `timestamp`.

        Newer than every boundary -> latest bucket (clamp).
        Up to one bucket width older than the oldest boundary -> oldest bucket.
        Anything older -> None; the caller decides whether to drop it.
        """
        with self._lock:
            oldest = self.oldest_boundary
            latest = self.latest_boundary

        if timestamp < oldest - self.width:
            return None
        if timestamp < oldest:
            return oldest
        if timestamp >= latest:
            return latest
        index = (timestamp - oldest) // self.width
        return oldest + index * self.width

    def advance_to(self, now: datetime) -> int:
        """
        Slides the window forward by however many whole buckets fit before `now`.
        Returns the number of buckets advanced (0 if `now` is still inside the
        current latest bucket, or in the past).
        """
        with self._lock:
            if now <= self._anchor:
                return 0
            steps = (now - self._anchor) // self.width
            if steps:
                self._anchor += steps * self.width
            return steps
