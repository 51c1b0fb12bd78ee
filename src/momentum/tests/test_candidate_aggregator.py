import pytest
from datetime import datetime, timedelta, timezone
from src.momentum.domain.candidate_aggregator import CandidateAggregator


T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
WIDTH = timedelta(minutes=5)


def key(minutes_ago: int) -> datetime:
    return T0 - timedelta(minutes=minutes_ago)


@pytest.fixture
def aggregator():
    return CandidateAggregator(
        entity_id="candidate-a",
        span=timedelta(hours=1),
        capacity=12,
        topic="Healthcare",
    )


def test_record_updates_counters(aggregator):
    aggregator.record_event(key(5), T0 - timedelta(minutes=1), T0, weight=80)
    aggregator.record_event(key(30), T0 - timedelta(minutes=28), T0)

    snap = aggregator.snapshot()
    assert snap.total_events == 2
    # Only the first event is inside the last 25% (15 minutes) of the hour
    assert snap.recent_events == 1
    assert snap.total_weight == 130.0
    assert snap.activity_scores == (80.0, 50.0)


def test_buckets_kept_in_time_order(aggregator):
    aggregator.record_event(key(10), key(9), T0)
    aggregator.record_event(key(40), key(39), T0)
    aggregator.record_event(key(10), key(8), T0)
    aggregator.record_event(key(25), key(24), T0)

    snap = aggregator.snapshot()
    assert [b.start for b in snap.buckets] == [key(40), key(25), key(10)]
    assert snap.counts == (1, 1, 2)


def test_weighted_count_accumulates(aggregator):
    aggregator.record_event(key(5), key(4), T0, weight=10)
    aggregator.record_event(key(5), key(3), T0, weight=30)
    bucket = aggregator.snapshot().buckets[0]
    assert bucket.count == 2
    assert bucket.weighted_count == 40.0


def test_activity_history_is_bounded():
    agg = CandidateAggregator("c", timedelta(hours=1), 12, activity_history_size=3)
    for weight in (10, 20, 30, 40, 50):
        agg.record_event(key(5), key(4), T0, weight=weight)

    snap = agg.snapshot()
    assert snap.activity_scores == (30.0, 40.0, 50.0)
    assert snap.avg_activity_score == 40.0
    assert snap.total_events == 5


def test_average_activity_defaults_to_fifty(aggregator):
    assert aggregator.snapshot().avg_activity_score == 50.0


def test_slide_drops_old_buckets_but_keeps_totals(aggregator):
    aggregator.record_event(key(60), key(59), T0)
    aggregator.record_event(key(5), key(4), T0)

    dropped = aggregator.slide_to(T0 + timedelta(minutes=5))

    snap = aggregator.snapshot()
    assert dropped == 1
    assert snap.counts == (1,)
    assert snap.total_events == 2


def test_slide_without_expired_buckets_is_noop(aggregator):
    aggregator.record_event(key(5), key(4), T0)
    aggregator.score(lambda s: object())
    assert aggregator.slide_to(key(5)) == 0
    assert not aggregator.is_dirty


def test_capacity_is_never_exceeded():
    agg = CandidateAggregator("c", timedelta(minutes=15), 3)
    for minutes in (25, 20, 15, 10, 5):
        agg.record_event(key(minutes), key(minutes), T0)
    assert len(agg.snapshot().buckets) == 3
    assert [b.start for b in agg.snapshot().buckets] == [key(15), key(10), key(5)]


def test_score_is_cached_until_next_write(aggregator):
    calls = []

    def compute(snapshot):
        calls.append(snapshot.total_events)
        return snapshot.total_events

    aggregator.record_event(key(5), key(4), T0)
    assert aggregator.score(compute) == 1
    assert aggregator.score(compute) == 1
    assert calls == [1]

    aggregator.record_event(key(5), key(3), T0)
    assert aggregator.is_dirty
    assert aggregator.score(compute) == 2
    assert calls == [1, 2]


def test_metadata_merge_keeps_history(aggregator):
    aggregator.record_event(key(5), key(4), T0)
    aggregator.apply_metadata({"display_name": "Option A", "topic": "Education", "color": "green"})

    snap = aggregator.snapshot()
    assert snap.display_name == "Option A"
    assert snap.topic == "Education"
    assert snap.total_events == 1
    assert aggregator.metadata == {"color": "green"}


def test_display_name_defaults_to_entity_id(aggregator):
    assert aggregator.display_name == "candidate-a"


@pytest.mark.parametrize("weight, expected", [
    (500, 100.0),
    (-20, 0.0),
    (float("nan"), 50.0),
    (float("inf"), 100.0),
])
def test_weight_is_kept_in_percentile_range(aggregator, weight, expected):
    aggregator.record_event(key(5), key(4), T0, weight=weight)

    snap = aggregator.snapshot()
    assert snap.buckets[0].weighted_count == expected
    assert snap.avg_activity_score == expected


def test_events_after_cutoff_follow_bucket_eviction(aggregator):
    aggregator.record_event(key(60), key(59), T0)
    aggregator.record_event(key(10), key(9), T0)
    aggregator.record_event(key(5), key(2), T0)

    assert [e.timestamp for e in aggregator.events_after(key(30))] == [key(9), key(2)]

    aggregator.slide_to(T0 + timedelta(minutes=5))
    assert [e.timestamp for e in aggregator.events_after(key(90))] == [key(9), key(2)]


def test_replay_keeps_original_placement(aggregator):
    source = CandidateAggregator("c", timedelta(hours=1), 12)
    source.record_event(key(5), key(4), T0, weight=80)
    source.record_event(key(50), key(49), T0)

    assert aggregator.replay(source.events_after(key(60))) == 2

    snap = aggregator.snapshot()
    assert snap.counts == (1, 1)
    assert snap.recent_events == source.recent_events == 1
    assert snap.total_weight == 130.0
