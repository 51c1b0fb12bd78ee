from typing import Optional

from src.momentum.domain.derived_score import DerivedScore
from src.momentum.domain.momentum_class import MomentumClass, is_falling, is_rising
from src.momentum.domain.time_bucket import AggregatorSnapshot
from src.momentum.interfaces.score_calculators import (
    MomentumCalculator,
    TrendPredictor,
    VelocityCalculator,
)
from src.momentum.services.momentum_calculator import ExponentialMomentumCalculator
from src.momentum.services.trend_predictor import LinearTrendPredictor
from src.momentum.services.velocity_calculator import TailVelocityCalculator


class DerivedScoreService:
    """
    Combines the calculators into a DerivedScore for one snapshot.
    Stateless; the same snapshot always yields the same score.
    """

    def __init__(
        self,
        momentum_calculator: Optional[MomentumCalculator] = None,
        velocity_calculator: Optional[VelocityCalculator] = None,
        trend_predictor: Optional[TrendPredictor] = None,
    ):
        self.momentum_calculator = momentum_calculator or ExponentialMomentumCalculator()
        self.velocity_calculator = velocity_calculator or TailVelocityCalculator()
        self.trend_predictor = trend_predictor or LinearTrendPredictor()

    def compute(self, snapshot: AggregatorSnapshot) -> DerivedScore:
        counts = snapshot.counts
        momentum = self.momentum_calculator.calculate(counts)
        velocity = self.velocity_calculator.calculate(counts)
        prediction = self.trend_predictor.predict(counts, momentum, velocity)

        recent_percentage = 0.0
        if snapshot.total_events > 0:
            recent_percentage = snapshot.recent_events / snapshot.total_events * 100

        return DerivedScore(
            entity_id=snapshot.entity_id,
            topic=snapshot.topic,
            display_name=snapshot.display_name,
            momentum=momentum,
            velocity=velocity,
            prediction=prediction,
            momentum_class=MomentumClass.classify(momentum),
            is_rising=is_rising(momentum),
            is_falling=is_falling(momentum),
            total_events=snapshot.total_events,
            recent_events=snapshot.recent_events,
            recent_percentage=recent_percentage,
            avg_activity_score=snapshot.avg_activity_score,
            bucket_counts=counts,
        )
