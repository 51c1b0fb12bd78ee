from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class TimeBucket:
    """
    Fixed-width sub-interval of the analysis timeframe.
    Replaced (not mutated) on every increment.
    """
    start: datetime
    count: int = 0
    weighted_count: float = 0.0

    def increment(self, weight: float) -> 'TimeBucket':
        return TimeBucket(
            start=self.start,
            count=self.count + 1,
            weighted_count=self.weighted_count + weight,
        )


@dataclass(frozen=True)
class AggregatorSnapshot:
    """
    Immutable view of a CandidateAggregator, used as calculator input.
    """
    entity_id: str
    topic: Optional[str]
    display_name: str
    buckets: Tuple[TimeBucket, ...]
    total_events: int
    recent_events: int
    total_weight: float
    activity_scores: Tuple[float, ...]

    @property
    def counts(self) -> Tuple[int, ...]:
        return tuple(b.count for b in self.buckets)

    @property
    def avg_activity_score(self) -> float:
        if not self.activity_scores:
            return 50.0
        return sum(self.activity_scores) / len(self.activity_scores)
