import math
from bisect import bisect_left, insort
from collections import deque
from datetime import datetime, timedelta
from threading import RLock
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, NamedTuple, Optional

from src.momentum.domain.derived_score import DerivedScore
from src.momentum.domain.time_bucket import AggregatorSnapshot, TimeBucket


class RecordedEvent(NamedTuple):
    bucket_key: datetime
    timestamp: datetime
    recorded_at: datetime
    weight: float


class CandidateAggregator:
    """
    Mutable per-entity state: bucketed counts for the active window plus
    lifetime counters.

    `total_events` is a running total and never shrinks when buckets are
    evicted. `recent_events` is decided once per event, at record time,
    against "now" at that moment.

    Every event still inside a live bucket is kept in a log, so a resync can
    carry over events newer than its cutoff. The log is pruned together with
    the buckets.

    The lock is reentrant so a caller can slide, record and read the score
    as one atomic step.
    """

    def __init__(
        self,
        entity_id: str,
        span: timedelta,
        capacity: int,
        topic: Optional[str] = None,
        display_name: Optional[str] = None,
        recent_fraction: float = 0.25,
        activity_history_size: int = 50,
        default_weight: float = 50.0,
        resync_cutoff: Optional[datetime] = None,
    ):
        self.entity_id = entity_id
        self.topic = topic
        self.display_name = display_name or entity_id
        self.span = span
        self.capacity = capacity
        self.width = span / capacity
        self.recent_fraction = recent_fraction
        self.default_weight = default_weight
        self.resync_cutoff = resync_cutoff
        self.metadata: Dict[str, Any] = {}

        self.total_events = 0
        self.recent_events = 0
        self.total_weight = 0.0

        self._keys: List[datetime] = []
        self._buckets: Dict[datetime, TimeBucket] = {}
        self._log: List[RecordedEvent] = []
        self._activity: Deque[float] = deque(maxlen=activity_history_size)
        self._score: Optional[DerivedScore] = None
        self.lock = RLock()

    def record_event(
        self,
        bucket_key: datetime,
        timestamp: datetime,
        now: datetime,
        weight: Optional[float] = None,
    ) -> None:
        value = self._weight(weight)
        with self.lock:
            bucket = self._buckets.get(bucket_key)
            if bucket is None:
                bucket = TimeBucket(start=bucket_key)
                insort(self._keys, bucket_key)
            self._buckets[bucket_key] = bucket.increment(value)
            self._log.append(RecordedEvent(bucket_key, timestamp, now, value))
            self._enforce_capacity()

            self.total_events += 1
            self.total_weight += value
            if timestamp > now - self.span * self.recent_fraction:
                self.recent_events += 1
            self._activity.append(value)
            self._score = None

    def events_after(self, cutoff: datetime) -> List[RecordedEvent]:
        with self.lock:
            return [e for e in self._log if e.timestamp > cutoff]

    def replay(self, events: Iterable[RecordedEvent]) -> int:
        """
        Records events taken from another aggregator's log, keeping their
        original bucket and recency placement.
        """
        replayed = 0
        with self.lock:
            for event in events:
                self.record_event(event.bucket_key, event.timestamp, event.recorded_at, event.weight)
                replayed += 1
        return replayed

    def slide_to(self, latest_boundary: datetime) -> int:
        """
        Drops buckets that fall before the window ending at `latest_boundary`.
        Lifetime counters are left untouched. Returns the number of buckets dropped.
        """
        floor = latest_boundary - (self.capacity - 1) * self.width
        with self.lock:
            cut = bisect_left(self._keys, floor)
            if not cut:
                return 0
            for key in self._keys[:cut]:
                del self._buckets[key]
            del self._keys[:cut]
            self._prune_log()
            self._score = None
            return cut

    def apply_metadata(self, fields: Mapping[str, Any]) -> None:
        with self.lock:
            for key, value in fields.items():
                if key == "display_name":
                    if value is not None:
                        self.display_name = str(value)
                elif key == "topic":
                    if value is not None:
                        self.topic = value
                else:
                    self.metadata[key] = value
            self._score = None

    @property
    def is_dirty(self) -> bool:
        return self._score is None

    def snapshot(self) -> AggregatorSnapshot:
        with self.lock:
            return AggregatorSnapshot(
                entity_id=self.entity_id,
                topic=self.topic,
                display_name=self.display_name,
                buckets=tuple(self._buckets[k] for k in self._keys),
                total_events=self.total_events,
                recent_events=self.recent_events,
                total_weight=self.total_weight,
                activity_scores=tuple(self._activity),
            )

    def score(self, compute: Callable[[AggregatorSnapshot], DerivedScore]) -> DerivedScore:
        """
        Cached derived score; recomputed only after a write.
        """
        with self.lock:
            if self._score is None:
                self._score = compute(self.snapshot())
            return self._score

    def _weight(self, weight: Optional[float]) -> float:
        # Percentiles live in 0 - 100; NaN falls back to the default.
        if weight is None:
            return self.default_weight
        value = float(weight)
        if math.isnan(value):
            return self.default_weight
        return min(100.0, max(0.0, value))

    def _enforce_capacity(self) -> None:
        evicted = False
        while len(self._keys) > self.capacity:
            oldest = self._keys.pop(0)
            del self._buckets[oldest]
            evicted = True
        if evicted:
            self._prune_log()

    def _prune_log(self) -> None:
        self._log = [e for e in self._log if e.bucket_key in self._buckets]
