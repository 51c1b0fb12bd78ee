from datetime import datetime, timedelta, timezone
from typing import Union
from src.momentum.interfaces.time_source import TimeSource


class SystemTimeSource(TimeSource):
    """Wall clock, UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenTimeSource(TimeSource):
    """
    Manually driven clock for tests and replays.
    Time only moves when advance() or set() is called.
    """

    def __init__(self, start_time: datetime):
        self._current_time = _require_aware(start_time)

    def now(self) -> datetime:
        return self._current_time

    def advance(self, delta: Union[timedelta, int]) -> datetime:
        # int deltas are milliseconds, matching timeframe spans
        if isinstance(delta, int):
            delta = timedelta(milliseconds=delta)
        self._current_time += delta
        return self._current_time

    def set(self, moment: datetime) -> None:
        self._current_time = _require_aware(moment)


def _require_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        raise ValueError("FrozenTimeSource requires timezone-aware datetime")
    return moment
