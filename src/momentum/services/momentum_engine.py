import logging
from contextlib import ExitStack
from datetime import datetime
from threading import Lock, RLock
from typing import Dict, Iterable, List, Optional, Tuple, Union

from src.config.settings import MomentumSettings, settings as default_settings
from src.momentum.adapters.clocks import SystemTimeSource
from src.momentum.domain.candidate_aggregator import CandidateAggregator
from src.momentum.domain.derived_score import DerivedScore, RankingMetric
from src.momentum.domain.diagnostics import ApplyOutcome, IngestionDiagnostics
from src.momentum.domain.engine_filter import EngineFilter
from src.momentum.domain.exceptions import EngineShutdownError, MomentumConfigurationError
from src.momentum.domain.time_window_index import TimeWindowIndex
from src.momentum.domain.timeframe import Timeframe, resolve_interval_count, resolve_span
from src.momentum.domain.vote_event import CandidateUpdate, VoteEvent
from src.momentum.interfaces.time_source import TimeSource
from src.momentum.observability.structured_engine_logger import StructuredEngineLogger
from src.momentum.services.derived_score_service import DerivedScoreService
from src.momentum.services.momentum_calculator import ExponentialMomentumCalculator
from src.momentum.services.realtime_merger import RealtimeMerger, is_well_formed
from src.momentum.services.trending_selector import TrendingSelector
from src.momentum.store.aggregator_registry import AggregatorRegistry

logger = logging.getLogger(__name__)

TimeframeLike = Union[Timeframe, str, int]


class MomentumEngine:
    """
    Owns the per-entity aggregators for one timeframe/filter configuration.

    Lifecycle: construct (configures immediately), optionally `configure` again
    (destructive: every aggregator is dropped), `shutdown` when the owning
    subscription goes away. Scores are computed lazily on read and cached per
    aggregator until its next write.
    """

    def __init__(
        self,
        time_source: Optional[TimeSource] = None,
        timeframe: Optional[TimeframeLike] = None,
        interval_count: Optional[int] = None,
        topic_filter: Optional[Iterable[str]] = None,
        user_type_filter: Optional[Iterable[str]] = None,
        config: Optional[MomentumSettings] = None,
        score_service: Optional[DerivedScoreService] = None,
        trending_selector: Optional[TrendingSelector] = None,
        structured_logger: Optional[StructuredEngineLogger] = None,
    ):
        self.config = config or default_settings
        if self.config.ACTIVITY_HISTORY_SIZE <= 0:
            raise MomentumConfigurationError(
                f"Activity history size must be positive, got {self.config.ACTIVITY_HISTORY_SIZE}"
            )
        if not 0 < self.config.RECENT_FRACTION <= 1:
            raise MomentumConfigurationError(
                f"Recent fraction must be in (0, 1], got {self.config.RECENT_FRACTION}"
            )

        self.time_source = time_source or SystemTimeSource()
        self.score_service = score_service or DerivedScoreService(
            momentum_calculator=ExponentialMomentumCalculator(self.config.GROWTH_FACTOR),
        )
        self.trending_selector = trending_selector or TrendingSelector(
            momentum_threshold=self.config.TRENDING_MOMENTUM_THRESHOLD,
            velocity_threshold=self.config.TRENDING_VELOCITY_THRESHOLD,
            default_limit=self.config.TRENDING_LIMIT,
        )
        self.structured_logger = structured_logger or StructuredEngineLogger()

        self._config_lock = RLock()
        self._diagnostics_lock = Lock()
        self._diagnostics = IngestionDiagnostics()
        self._closed = False

        self.configure(
            timeframe if timeframe is not None else self.config.DEFAULT_TIMEFRAME,
            interval_count,
            topic_filter,
            user_type_filter,
        )

    # --- Configuration / lifecycle ---

    def configure(
        self,
        timeframe: TimeframeLike,
        interval_count: Optional[int] = None,
        topic_filter: Optional[Iterable[str]] = None,
        user_type_filter: Optional[Iterable[str]] = None,
    ) -> None:
        """
        Rebuilds the window index and drops every aggregator.
        This is destructive; callers re-ingest history afterwards.
        """
        span = resolve_span(timeframe)
        count = resolve_interval_count(timeframe, interval_count)

        with self._config_lock:
            self._ensure_open()
            self.timeframe = timeframe
            self.index = TimeWindowIndex(span, count, self.time_source.now())
            self.filter = EngineFilter.of(topic_filter, user_type_filter)
            self.registry = AggregatorRegistry()
            self.merger = RealtimeMerger(self.index, self.registry, self.filter, self._new_aggregator)

        self.structured_logger.emit(
            "ENGINE_CONFIGURED",
            timeframe=getattr(timeframe, "value", timeframe),
            span_ms=int(span.total_seconds() * 1000),
            interval_count=count,
            topics=sorted(self.filter.topics) if self.filter.topics is not None else None,
        )

    def shutdown(self) -> None:
        with self._config_lock:
            if self._closed:
                return
            self._closed = True
            entities = len(self.registry)
            self.registry.clear()
        self.structured_logger.emit("ENGINE_SHUTDOWN", entities=entities)

    @property
    def is_closed(self) -> bool:
        return self._closed

    # --- Ingestion ---

    def apply_event(self, event: VoteEvent) -> ApplyOutcome:
        """
        Live path. Never raises for bad or out-of-scope events; the outcome says
        what happened.
        """
        self._ensure_open()
        now = self.time_source.now()
        self.index.advance_to(now)
        return self._apply(self.merger, event, now)

    def ingest_batch(self, events: Iterable[VoteEvent]) -> IngestionDiagnostics:
        """
        Cold-start path. Uses a single "now" for the whole batch so placement
        does not drift while the batch is processed.
        """
        self._ensure_open()
        now = self.time_source.now()
        self.index.advance_to(now)
        merger = self.merger
        batch = IngestionDiagnostics()
        for event in events:
            batch = batch.record(self._apply(merger, event, now))
        logger.debug(f"Ingested batch: {batch}")
        return batch

    def apply_candidate_updates(self, updates: Iterable[CandidateUpdate]) -> int:
        self._ensure_open()
        applied = 0
        for outcome in self.merger.merge_updates(updates):
            if outcome is ApplyOutcome.APPLIED:
                applied += 1
                with self._diagnostics_lock:
                    self._diagnostics = self._diagnostics.with_metadata_update()
            else:
                self._count(outcome)
        return applied

    def record_rejection(self, reason: str) -> None:
        """
        Counts a payload rejected before it could become a VoteEvent.
        """
        self._count(ApplyOutcome.REJECTED_MALFORMED)
        self.structured_logger.emit("EVENT_REJECTED", level=logging.WARNING, reason=reason)

    def resync_entity(
        self,
        entity_id: str,
        events: Iterable[VoteEvent],
        cutoff: Optional[datetime] = None,
    ) -> Optional[DerivedScore]:
        """
        Replaces one entity's aggregator with one rebuilt from `events` up to
        `cutoff`. Events the live aggregator already took after the cutoff are
        carried over. Live events at or before the cutoff are dropped
        afterwards, since the rebuilt aggregator already holds them.
        """
        self._ensure_open()
        now = self.time_source.now()
        cutoff = cutoff or now
        self.index.advance_to(now)

        previous = self.registry.get(entity_id)
        topic = previous.topic if previous is not None else None
        display_name = previous.display_name if previous is not None else None
        relevant = [e for e in events if is_well_formed(e) and e.entity_id == entity_id]
        for event in relevant:
            topic = event.topic if event.topic is not None else topic
            display_name = event.display_name or display_name

        if not self.filter.accepts_topic(topic):
            self.registry.remove(entity_id)
            return None

        rebuilt = self._new_aggregator(entity_id, topic, display_name)

        # Build privately, then publish.
        scratch = AggregatorRegistry()
        scratch.replace(rebuilt)
        builder = RealtimeMerger(self.index, scratch, self.filter, self._new_aggregator)
        applied = 0
        for event in relevant:
            if event.timestamp > cutoff:
                continue
            if builder.apply(event, now) is ApplyOutcome.APPLIED:
                applied += 1
        rebuilt.resync_cutoff = cutoff

        replayed = self._publish(rebuilt, cutoff)
        self.structured_logger.emit(
            "ENTITY_RESYNCED",
            entity_id=entity_id,
            events=applied,
            replayed=replayed,
            cutoff=cutoff,
        )
        return self._score(rebuilt)

    def resync(self, events: Iterable[VoteEvent], cutoff: Optional[datetime] = None) -> int:
        """
        Resyncs every entity present in `events`. Returns the number of entities rebuilt.
        """
        cutoff = cutoff or self.time_source.now()
        grouped: Dict[str, List[VoteEvent]] = {}
        for event in events:
            if not is_well_formed(event):
                self._count(ApplyOutcome.REJECTED_MALFORMED)
                continue
            grouped.setdefault(event.entity_id, []).append(event)

        rebuilt = 0
        for entity_id, entity_events in grouped.items():
            if self.resync_entity(entity_id, entity_events, cutoff) is not None:
                rebuilt += 1
        return rebuilt

    def advance(self, now: Optional[datetime] = None) -> int:
        """
        Slides the window to `now` (default: the time source). Aggregators
        follow lazily on their next write or read.
        """
        self._ensure_open()
        return self.index.advance_to(now or self.time_source.now())

    def evict(self, entity_id: str) -> bool:
        self._ensure_open()
        return self.registry.remove(entity_id)

    # --- Queries ---

    def get_snapshot(self, entity_id: str) -> Optional[DerivedScore]:
        self._ensure_open()
        aggregator = self.registry.get(entity_id)
        if aggregator is None:
            return None
        return self._score(aggregator)

    def get_all(self) -> List[Tuple[str, DerivedScore]]:
        """
        Every entity, ordered by momentum (descending, stable).
        """
        ranked = self.trending_selector.rank(self._scores(), RankingMetric.MOMENTUM)
        return [(score.entity_id, score) for score in ranked]

    def get_trending(self, limit: Optional[int] = None) -> List[DerivedScore]:
        return self.trending_selector.select(self._scores(), limit)

    def get_ranked(
        self,
        metric: Union[RankingMetric, str] = RankingMetric.MOMENTUM,
        limit: Optional[int] = None,
        compact: bool = False,
    ) -> List[DerivedScore]:
        metric = RankingMetric.parse(metric)
        if limit is None:
            limit = self.config.COMPACT_DISPLAY_LIMIT if compact else self.config.DISPLAY_LIMIT
        return self.trending_selector.rank(self._scores(), metric, limit)

    def diagnostics(self) -> IngestionDiagnostics:
        with self._diagnostics_lock:
            return self._diagnostics

    def __len__(self) -> int:
        return len(self.registry)

    # --- Internals ---

    def _apply(self, merger: RealtimeMerger, event: VoteEvent, now: datetime) -> ApplyOutcome:
        outcome = merger.apply(event, now)
        self._count(outcome)
        if outcome is ApplyOutcome.REJECTED_MALFORMED:
            self.structured_logger.emit(
                "EVENT_REJECTED",
                level=logging.WARNING,
                reason="missing entity id or timestamp",
                entity_id=getattr(event, "entity_id", None),
            )
        elif outcome is ApplyOutcome.DROPPED_OUT_OF_WINDOW:
            self.structured_logger.emit(
                "EVENT_DROPPED_OUT_OF_WINDOW",
                level=logging.DEBUG,
                entity_id=event.entity_id,
                event_timestamp=event.timestamp,
                window_floor=self.index.oldest_boundary,
            )
        return outcome

    def _scores(self) -> List[DerivedScore]:
        self._ensure_open()
        return [self._score(a) for a in self.registry.list()]

    def _score(self, aggregator: CandidateAggregator) -> DerivedScore:
        with aggregator.lock:
            aggregator.slide_to(self.index.latest_boundary)
            return aggregator.score(self.score_service.compute)

    def _publish(self, rebuilt: CandidateAggregator, cutoff: datetime) -> int:
        """
        Swaps `rebuilt` into the registry. The live aggregator's extra metadata
        and the events it received after the cutoff are carried onto `rebuilt`
        under both locks. A concurrent apply either lands before the swap and
        is carried over, or waits and retries against `rebuilt`.
        """
        while True:
            current = self.registry.get(rebuilt.entity_id)
            with ExitStack() as stack:
                if current is not None:
                    stack.enter_context(current.lock)
                stack.enter_context(rebuilt.lock)
                if not self.registry.swap(current, rebuilt):
                    continue
                if current is None:
                    return 0
                rebuilt.apply_metadata(dict(current.metadata))
                return rebuilt.replay(current.events_after(cutoff))

    def _new_aggregator(
        self,
        entity_id: str,
        topic: Optional[str],
        display_name: Optional[str],
    ) -> CandidateAggregator:
        return CandidateAggregator(
            entity_id=entity_id,
            span=self.index.span,
            capacity=self.index.interval_count,
            topic=topic,
            display_name=display_name,
            recent_fraction=self.config.RECENT_FRACTION,
            activity_history_size=self.config.ACTIVITY_HISTORY_SIZE,
            default_weight=self.config.DEFAULT_ACTIVITY_PERCENTILE,
        )

    def _count(self, outcome: ApplyOutcome) -> None:
        with self._diagnostics_lock:
            self._diagnostics = self._diagnostics.record(outcome)

    def _ensure_open(self) -> None:
        if self._closed:
            raise EngineShutdownError("MomentumEngine has been shut down")
