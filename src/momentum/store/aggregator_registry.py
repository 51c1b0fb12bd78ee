from threading import Lock
from typing import Callable, Dict, List, Optional

from src.momentum.domain.candidate_aggregator import CandidateAggregator


class AggregatorRegistry:
    """
    In-memory map of entity id -> CandidateAggregator.
    The registry lock guards membership only; each aggregator carries its own lock.
    Iteration order is insertion order.
    """

    def __init__(self):
        self._aggregators: Dict[str, CandidateAggregator] = {}
        self._lock = Lock()

    def get(self, entity_id: str) -> Optional[CandidateAggregator]:
        with self._lock:
            return self._aggregators.get(entity_id)

    def get_or_create(
        self,
        entity_id: str,
        factory: Callable[[], CandidateAggregator],
    ) -> CandidateAggregator:
        with self._lock:
            aggregator = self._aggregators.get(entity_id)
            if aggregator is None:
                aggregator = factory()
                self._aggregators[entity_id] = aggregator
            return aggregator

    def replace(self, aggregator: CandidateAggregator) -> None:
        with self._lock:
            self._aggregators[aggregator.entity_id] = aggregator

    def swap(
        self,
        expected: Optional[CandidateAggregator],
        aggregator: CandidateAggregator,
    ) -> bool:
        """
        Publishes `aggregator` only if the current entry is still `expected`
        (None meaning "no entry").
        """
        with self._lock:
            if self._aggregators.get(aggregator.entity_id) is not expected:
                return False
            self._aggregators[aggregator.entity_id] = aggregator
            return True

    def remove(self, entity_id: str) -> bool:
        with self._lock:
            return self._aggregators.pop(entity_id, None) is not None

    def list(self) -> List[CandidateAggregator]:
        with self._lock:
            return list(self._aggregators.values())

    def clear(self) -> None:
        with self._lock:
            self._aggregators.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._aggregators)
