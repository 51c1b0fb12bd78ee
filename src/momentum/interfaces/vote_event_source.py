from abc import ABC, abstractmethod
from typing import Any, List, Mapping


class VoteEventSource(ABC):
    """
    Interface for fetching historical vote payloads.
    Transport, reconnection and authentication live in the implementation.
    """
    @abstractmethod
    def fetch(self) -> List[Mapping[str, Any]]:
        """
        Returns raw vote payloads for the current timeframe (cold start / resync).
        Must not touch engine state.
        """
        pass
