from typing import Any, List, Mapping
from src.momentum.interfaces.vote_event_source import VoteEventSource


class MockVoteEventSource(VoteEventSource):
    """
    Deterministic source for testing.
    Returns the same predefined payloads on every fetch, like a history endpoint.
    """
    def __init__(self, payloads: List[Mapping[str, Any]]):
        self._payloads = list(payloads)
        self.fetch_count = 0

    def fetch(self) -> List[Mapping[str, Any]]:
        self.fetch_count += 1
        return list(self._payloads)

    def extend(self, payloads: List[Mapping[str, Any]]) -> None:
        self._payloads.extend(payloads)
