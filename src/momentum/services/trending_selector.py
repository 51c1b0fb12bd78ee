from typing import Iterable, List, Optional

from src.momentum.domain.derived_score import DerivedScore, RankingMetric
from src.momentum.domain.exceptions import MomentumConfigurationError


class TrendingSelector:
    """
    Picks the "trending" subset and produces display rankings.
    Sorting is stable: ties keep the order the scores were supplied in.
    """

    def __init__(
        self,
        momentum_threshold: float = 0.5,
        velocity_threshold: float = 1.0,
        default_limit: int = 5,
    ):
        if default_limit <= 0:
            raise MomentumConfigurationError(f"Trending limit must be positive, got {default_limit}")
        self.momentum_threshold = momentum_threshold
        self.velocity_threshold = velocity_threshold
        self.default_limit = default_limit

    def is_trending(self, score: DerivedScore) -> bool:
        return score.momentum > self.momentum_threshold or score.velocity > self.velocity_threshold

    def select(self, scores: Iterable[DerivedScore], limit: Optional[int] = None) -> List[DerivedScore]:
        limit = self.default_limit if limit is None else limit
        if limit <= 0:
            return []
        candidates = [s for s in scores if self.is_trending(s)]
        candidates.sort(key=lambda s: s.momentum + s.velocity, reverse=True)
        return candidates[:limit]

    @staticmethod
    def rank(
        scores: Iterable[DerivedScore],
        metric: RankingMetric = RankingMetric.MOMENTUM,
        limit: Optional[int] = None,
    ) -> List[DerivedScore]:
        ranked = sorted(scores, key=lambda s: s.metric(metric), reverse=True)
        return ranked if limit is None else ranked[:max(0, limit)]
