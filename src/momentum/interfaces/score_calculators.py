from abc import ABC, abstractmethod
from typing import Sequence


class MomentumCalculator(ABC):
    """
    Bucket counts (oldest -> newest) -> momentum score.
    Must be pure and deterministic.
    """
    @abstractmethod
    def calculate(self, counts: Sequence[float]) -> float:
        pass


class VelocityCalculator(ABC):
    """
    Bucket counts (oldest -> newest) -> second-order change.
    Must be pure and deterministic.
    """
    @abstractmethod
    def calculate(self, counts: Sequence[float]) -> float:
        pass


class TrendPredictor(ABC):
    """
    Next-period projection from the series and its derived scores.
    Must be pure and deterministic.
    """
    @abstractmethod
    def predict(self, counts: Sequence[float], momentum: float, velocity: float) -> float:
        pass
