import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from src.momentum.domain.candidate_aggregator import CandidateAggregator
from src.momentum.domain.diagnostics import ApplyOutcome
from src.momentum.domain.engine_filter import EngineFilter
from src.momentum.domain.time_window_index import TimeWindowIndex
from src.momentum.domain.vote_event import CandidateUpdate, VoteEvent
from src.momentum.store.aggregator_registry import AggregatorRegistry

logger = logging.getLogger(__name__)

AggregatorFactory = Callable[[str, Optional[str], Optional[str]], CandidateAggregator]


def is_well_formed(event: VoteEvent) -> bool:
    if not isinstance(event, VoteEvent):
        return False
    if not isinstance(event.entity_id, str) or not event.entity_id.strip():
        return False
    if not isinstance(event.timestamp, datetime) or event.timestamp.tzinfo is None:
        return False
    weight = event.activity_percentile
    if weight is not None and (isinstance(weight, bool) or not isinstance(weight, (int, float))):
        return False
    return True


class RealtimeMerger:
    """
    Applies single events to the owning aggregator without replaying history.

    Work per event is bounded by the bucket count of one aggregator: locate it,
    slide it to the current window, bump one bucket. Only that aggregator's
    cached score is invalidated.
    """

    def __init__(
        self,
        index: TimeWindowIndex,
        registry: AggregatorRegistry,
        engine_filter: EngineFilter,
        aggregator_factory: AggregatorFactory,
    ):
        self.index = index
        self.registry = registry
        self.filter = engine_filter
        self.aggregator_factory = aggregator_factory

    def apply(self, event: VoteEvent, now: datetime) -> ApplyOutcome:
        if not is_well_formed(event):
            return ApplyOutcome.REJECTED_MALFORMED

        existing = self.registry.get(event.entity_id)
        topic = event.topic
        if topic is None and existing is not None:
            topic = existing.topic
        if not self.filter.accepts_topic(topic) or not self.filter.accepts_user_type(event.user_type):
            return ApplyOutcome.DROPPED_FILTERED

        bucket_key = self.index.bucket_key_for(event.timestamp)
        if bucket_key is None:
            return ApplyOutcome.DROPPED_OUT_OF_WINDOW

        while True:
            aggregator = existing or self.registry.get_or_create(
                event.entity_id,
                lambda: self.aggregator_factory(event.entity_id, topic, event.display_name),
            )
            with aggregator.lock:
                # A resync may have swapped the aggregator out while we waited.
                if self.registry.get(event.entity_id) is not aggregator:
                    existing = None
                    continue
                if aggregator.resync_cutoff is not None and event.timestamp <= aggregator.resync_cutoff:
                    return ApplyOutcome.DROPPED_STALE
                aggregator.slide_to(self.index.latest_boundary)
                aggregator.record_event(bucket_key, event.timestamp, now, event.activity_percentile)
                return ApplyOutcome.APPLIED

    def merge_updates(self, updates: Iterable[CandidateUpdate]) -> List[ApplyOutcome]:
        """
        Merges metadata into existing aggregators without touching bucket history.
        Unknown entities are created empty, but only inside the topic scope:
        with a topic filter active, an update whose topic is unknown is dropped.
        """
        outcomes = []
        for update in updates:
            if not isinstance(update.entity_id, str) or not update.entity_id.strip():
                outcomes.append(ApplyOutcome.REJECTED_MALFORMED)
                continue

            existing = self.registry.get(update.entity_id)
            topic = update.topic
            if topic is None and existing is not None:
                topic = existing.topic
            if not self.filter.accepts_topic(topic):
                outcomes.append(ApplyOutcome.DROPPED_FILTERED)
                continue

            aggregator = existing or self.registry.get_or_create(
                update.entity_id,
                lambda: self.aggregator_factory(update.entity_id, topic, update.display_name),
            )
            aggregator.apply_metadata(update.fields)
            logger.debug(f"Merged metadata for {update.entity_id}: {sorted(update.fields)}")
            outcomes.append(ApplyOutcome.APPLIED)
        return outcomes
