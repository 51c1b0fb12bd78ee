from abc import ABC, abstractmethod
from datetime import datetime


class TimeSource(ABC):
    """
    Source of "now" for window placement and recency.
    Implementations must return UTC-aware datetimes.
    """
    @abstractmethod
    def now(self) -> datetime:
        pass
