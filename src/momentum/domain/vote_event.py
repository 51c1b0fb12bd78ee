from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class VoteEvent:
    """
    A single vote recorded against a candidate or region.
    Produced by the event source, consumed exactly once by the engine.
    """
    entity_id: str                              # candidate or region identifier
    topic: str
    timestamp: datetime                         # UTC-aware
    activity_percentile: Optional[float] = None  # 0 - 100, caller supplied weight
    display_name: Optional[str] = None
    user_type: Optional[str] = None


@dataclass(frozen=True)
class CandidateUpdate:
    """
    Metadata-only change for an entity. Does not represent a vote.
    """
    entity_id: str
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> Optional[str]:
        return self.fields.get("display_name")

    @property
    def topic(self) -> Optional[str]:
        return self.fields.get("topic")
