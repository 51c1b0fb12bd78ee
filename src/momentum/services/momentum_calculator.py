from typing import Sequence

from src.momentum.domain.exceptions import MomentumConfigurationError
from src.momentum.interfaces.score_calculators import MomentumCalculator


class ExponentialMomentumCalculator(MomentumCalculator):
    """
    Exponentially weighted average of successive bucket deltas.

        w[i] = growth_factor ** i            for i in 1..n-1
        momentum = sum(delta[i] * w[i]) / sum(w[i])

    With growth_factor > 1 the newest deltas dominate.
    """

    def __init__(self, growth_factor: float = 1.2):
        if growth_factor <= 0:
            raise MomentumConfigurationError(f"Growth factor must be positive, got {growth_factor}")
        self.growth_factor = growth_factor

    def calculate(self, counts: Sequence[float]) -> float:
        if len(counts) < 2:
            return 0.0

        weighted_sum = 0.0
        total_weight = 0.0
        for i in range(1, len(counts)):
            weight = self.growth_factor ** i
            weighted_sum += (counts[i] - counts[i - 1]) * weight
            total_weight += weight

        return weighted_sum / total_weight if total_weight > 0 else 0.0
