from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from src.momentum.domain.exceptions import MomentumConfigurationError
from src.momentum.domain.momentum_class import MomentumClass


class RankingMetric(Enum):
    MOMENTUM = "momentum"
    VELOCITY = "velocity"
    PREDICTION = "prediction"

    @classmethod
    def parse(cls, value: Union['RankingMetric', str]) -> 'RankingMetric':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            known = ", ".join(m.value for m in cls)
            raise MomentumConfigurationError(
                f"Unknown ranking metric {value!r}; expected one of: {known}"
            ) from None


@dataclass(frozen=True)
class DerivedScore:
    """
    Scores derived from one aggregator's bucket sequence.
    Never persisted; recomputed after every mutation of the owning aggregator.
    """
    entity_id: str
    topic: Optional[str]
    display_name: str

    momentum: float
    velocity: float
    prediction: float
    momentum_class: MomentumClass
    is_rising: bool
    is_falling: bool

    total_events: int
    recent_events: int
    recent_percentage: float   # 0.0 - 100.0
    avg_activity_score: float  # 0.0 - 100.0
    bucket_counts: Tuple[int, ...] = ()

    def metric(self, metric: RankingMetric) -> float:
        return getattr(self, metric.value)
