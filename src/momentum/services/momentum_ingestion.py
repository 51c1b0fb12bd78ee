import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from src.momentum.domain.diagnostics import ApplyOutcome, IngestionDiagnostics
from src.momentum.domain.exceptions import MalformedEventError
from src.momentum.domain.vote_event import CandidateUpdate, VoteEvent
from src.momentum.interfaces.vote_event_normalizer import VoteEventNormalizer
from src.momentum.interfaces.vote_event_source import VoteEventSource
from src.momentum.services.momentum_engine import MomentumEngine

logger = logging.getLogger(__name__)


class MomentumIngestionService:
    """
    Orchestrates the pipeline: Fetch -> Normalize -> Engine.

    The live handlers are meant to be subscribed to the transport's
    vote / candidate update channels. They never raise for bad payloads.
    """

    def __init__(
        self,
        source: VoteEventSource,
        normalizer: VoteEventNormalizer,
        engine: MomentumEngine,
        resync_interval_seconds: Optional[int] = None,
    ):
        self.source = source
        self.normalizer = normalizer
        self.engine = engine
        interval = resync_interval_seconds
        if interval is None:
            interval = engine.config.RESYNC_INTERVAL_SECONDS
        self.resync_interval = timedelta(seconds=interval)
        self.last_sync_at: Optional[datetime] = None

    def ingest(self) -> IngestionDiagnostics:
        """
        Cold start: loads the source's history into the engine.
        """
        events, rejected = self._normalize_all(self.source.fetch())
        batch = self.engine.ingest_batch(events)
        self.last_sync_at = self.engine.time_source.now()
        for _ in range(rejected):
            batch = batch.record(ApplyOutcome.REJECTED_MALFORMED)
        return batch

    def resync(self) -> int:
        """
        Periodic full resync. Entities seen in the fetched history are rebuilt
        wholesale; live events up to the cutoff are then ignored.
        """
        cutoff = self.engine.time_source.now()
        events, _ = self._normalize_all(self.source.fetch())
        rebuilt = self.engine.resync(events, cutoff)
        self.last_sync_at = cutoff
        logger.info(f"Resynced {rebuilt} entities at {cutoff.isoformat()}")
        return rebuilt

    def resync_due(self, now: Optional[datetime] = None) -> bool:
        if self.last_sync_at is None:
            return True
        current = now or self.engine.time_source.now()
        return current - self.last_sync_at >= self.resync_interval

    def on_vote_update(self, payload: Mapping[str, Any]) -> ApplyOutcome:
        try:
            event = self.normalizer.normalize_vote(payload)
        except MalformedEventError as e:
            logger.warning(f"Rejected vote update: {e}")
            self.engine.record_rejection(str(e))
            return ApplyOutcome.REJECTED_MALFORMED
        return self.engine.apply_event(event)

    def on_candidate_update(self, payload: Mapping[str, Any]) -> int:
        """
        Accepts {"updates": [...]} batches or a single update mapping.
        Returns the number of updates merged.
        """
        raw_updates = payload.get("updates") if isinstance(payload, Mapping) else None
        if raw_updates is None:
            raw_updates = [payload]

        updates: List[CandidateUpdate] = []
        for raw in raw_updates:
            try:
                updates.append(self.normalizer.normalize_update(raw))
            except MalformedEventError as e:
                logger.warning(f"Rejected candidate update: {e}")
                self.engine.record_rejection(str(e))
        return self.engine.apply_candidate_updates(updates)

    def _normalize_all(self, payloads: Iterable[Mapping[str, Any]]) -> Tuple[List[VoteEvent], int]:
        events: List[VoteEvent] = []
        rejected = 0
        for payload in payloads:
            try:
                events.append(self.normalizer.normalize_vote(payload))
            except MalformedEventError as e:
                logger.warning(f"Skipping malformed history payload: {e}")
                self.engine.record_rejection(str(e))
                rejected += 1
        return events, rejected
