import random
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from src.momentum.domain.timeframe import Timeframe
from src.momentum.interfaces.time_source import TimeSource
from src.momentum.interfaces.vote_event_source import VoteEventSource

DEFAULT_TOPICS = (
    "Budget Allocation",
    "Climate Policy",
    "Infrastructure",
    "Healthcare",
    "Education",
)


class SyntheticVoteEventSource(VoteEventSource):
    """
    Randomized demo data, used when no real events are available.
    Emits ordinary vote payloads so the engine treats it like any other source.
    Seeded, so a given seed always yields the same history.
    """

    def __init__(
        self,
        time_source: TimeSource,
        timeframe: Timeframe = Timeframe.LAST_24_HOURS,
        topics: Sequence[str] = DEFAULT_TOPICS,
        seed: Optional[int] = None,
        max_votes_per_interval: int = 20,
    ):
        self.time_source = time_source
        self.timeframe = timeframe
        self.topics = tuple(topics)
        self.max_votes_per_interval = max_votes_per_interval
        self._rng = random.Random(seed)

    def fetch(self) -> List[Mapping[str, Any]]:
        now = self.time_source.now()
        intervals = self.timeframe.default_interval_count
        width = self.timeframe.span / intervals
        payloads: List[Dict[str, Any]] = []

        for topic in self.topics:
            slug = "-".join(topic.lower().split())
            for i in range(self._rng.randint(2, 5)):
                candidate_id = f"{slug}-candidate-{i + 1}"
                bias = (self._rng.random() - 0.3) * 4
                for j in range(intervals):
                    start = now - (intervals - j) * width
                    votes = max(0, int(self._rng.random() * self.max_votes_per_interval + bias * j / intervals))
                    for _ in range(votes):
                        offset = timedelta(seconds=self._rng.random() * width.total_seconds())
                        payloads.append({
                            "candidateId": candidate_id,
                            "candidateName": f"Option {chr(65 + i)}",
                            "topic": topic,
                            "timestamp": start + offset,
                            "activityData": {"percentile": round(self._rng.uniform(40, 80), 1)},
                        })

        payloads.sort(key=lambda p: p["timestamp"])
        return payloads
