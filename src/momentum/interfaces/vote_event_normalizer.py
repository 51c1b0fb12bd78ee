from abc import ABC, abstractmethod
from typing import Any, Mapping
from src.momentum.domain.vote_event import CandidateUpdate, VoteEvent


class VoteEventNormalizer(ABC):
    """
    Converts raw transport payloads into domain events.
    Raises MalformedEventError for payloads that cannot become events.
    """
    @abstractmethod
    def normalize_vote(self, payload: Mapping[str, Any]) -> VoteEvent:
        pass

    @abstractmethod
    def normalize_update(self, payload: Mapping[str, Any]) -> CandidateUpdate:
        pass
