from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional


@dataclass(frozen=True)
class EngineFilter:
    """
    Topic / user-type scope supplied by the configuration layer.
    None means "accept everything" for that dimension.
    """
    topics: Optional[FrozenSet[str]] = None
    user_types: Optional[FrozenSet[str]] = None

    @classmethod
    def of(
        cls,
        topics: Optional[Iterable[str]] = None,
        user_types: Optional[Iterable[str]] = None,
    ) -> 'EngineFilter':
        return cls(
            topics=frozenset(topics) if topics is not None else None,
            user_types=frozenset(user_types) if user_types is not None else None,
        )

    def accepts_topic(self, topic: Optional[str]) -> bool:
        if self.topics is None:
            return True
        return topic in self.topics

    def accepts_user_type(self, user_type: Optional[str]) -> bool:
        if self.user_types is None or user_type is None:
            return True
        return user_type in self.user_types
