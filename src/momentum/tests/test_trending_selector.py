import pytest
from src.momentum.domain.derived_score import DerivedScore, RankingMetric
from src.momentum.domain.exceptions import MomentumConfigurationError
from src.momentum.domain.momentum_class import MomentumClass
from src.momentum.services.trending_selector import TrendingSelector


def score(entity_id: str, momentum: float, velocity: float = 0.0, prediction: float = 0.0) -> DerivedScore:
    return DerivedScore(
        entity_id=entity_id,
        topic="Infrastructure",
        display_name=entity_id,
        momentum=momentum,
        velocity=velocity,
        prediction=prediction,
        momentum_class=MomentumClass.classify(momentum),
        is_rising=momentum > 0,
        is_falling=momentum < -0.1,
        total_events=0,
        recent_events=0,
        recent_percentage=0.0,
        avg_activity_score=50.0,
    )


@pytest.fixture
def selector():
    return TrendingSelector(momentum_threshold=0.5, velocity_threshold=1.0, default_limit=5)


def test_threshold_filter(selector):
    scores = [
        score("flat", 0.5, 1.0),         # neither threshold exceeded
        score("momentum", 0.6, -3.0),
        score("velocity", -1.0, 1.5),
        score("falling", -4.0, 0.0),
    ]
    picked = [s.entity_id for s in selector.select(scores)]
    assert picked == ["momentum", "velocity"]


def test_sorted_by_combined_score(selector):
    scores = [score("a", 1.0, 0.0), score("b", 3.0, 2.0), score("c", 0.6, 4.0)]
    assert [s.entity_id for s in selector.select(scores)] == ["b", "c", "a"]


def test_limit_respected(selector):
    scores = [score(f"e{i}", 1.0 + i) for i in range(12)]
    assert len(selector.select(scores)) == 5
    assert len(selector.select(scores, limit=3)) == 3
    assert selector.select(scores, limit=0) == []
    assert selector.select(scores, limit=3)[0].entity_id == "e11"


def test_ties_keep_input_order(selector):
    scores = [score("first", 1.0, 1.0), score("second", 2.0, 0.0), score("third", 0.0, 2.0)]
    assert [s.entity_id for s in selector.select(scores)] == ["first", "second", "third"]


def test_never_returns_non_trending(selector):
    scores = [score(f"e{i}", (i - 10) / 4, (i % 5) / 2) for i in range(21)]
    for picked in selector.select(scores, limit=50):
        assert picked.momentum > 0.5 or picked.velocity > 1


@pytest.mark.parametrize("metric, expected", [
    (RankingMetric.MOMENTUM, ["b", "a", "c"]),
    (RankingMetric.VELOCITY, ["c", "a", "b"]),
    (RankingMetric.PREDICTION, ["a", "c", "b"]),
])
def test_rank_by_metric(metric, expected):
    scores = [
        score("a", 1.0, velocity=0.0, prediction=30.0),
        score("b", 2.0, velocity=-1.0, prediction=5.0),
        score("c", -1.0, velocity=3.0, prediction=12.0),
    ]
    assert [s.entity_id for s in TrendingSelector.rank(scores, metric)] == expected
    assert len(TrendingSelector.rank(scores, metric, limit=2)) == 2


def test_invalid_default_limit():
    with pytest.raises(MomentumConfigurationError):
        TrendingSelector(default_limit=0)
