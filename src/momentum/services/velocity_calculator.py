from typing import Sequence

from src.momentum.interfaces.score_calculators import VelocityCalculator


class TailVelocityCalculator(VelocityCalculator):
    """
    Acceleration over the last three buckets only; older history is ignored.
    """

    def calculate(self, counts: Sequence[float]) -> float:
        n = len(counts)
        if n < 3:
            return 0.0
        d0 = counts[n - 2] - counts[n - 3]
        d1 = counts[n - 1] - counts[n - 2]
        return float(d1 - d0)
