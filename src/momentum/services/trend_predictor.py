from typing import Sequence

from src.momentum.interfaces.score_calculators import TrendPredictor


class LinearTrendPredictor(TrendPredictor):
    """
    One-step linear extrapolation: last + momentum + velocity_weight * velocity,
    floored at zero.
    """

    def __init__(self, velocity_weight: float = 0.5):
        self.velocity_weight = velocity_weight

    def predict(self, counts: Sequence[float], momentum: float, velocity: float) -> float:
        if len(counts) < 2:
            return 0.0
        projected = counts[-1] + momentum + self.velocity_weight * velocity
        return max(0.0, float(projected))
