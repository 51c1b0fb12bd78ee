from datetime import timedelta
from enum import Enum
from typing import Union

from src.momentum.domain.exceptions import MomentumConfigurationError


class Timeframe(Enum):
    """
    Analysis timeframe presets offered to the configuration layer.
    """
    LAST_HOUR = "1h"
    LAST_6_HOURS = "6h"
    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"

    @property
    def span_ms(self) -> int:
        return _SPAN_MS[self]

    @property
    def span(self) -> timedelta:
        return timedelta(milliseconds=self.span_ms)

    @property
    def default_interval_count(self) -> int:
        # 5min, 15min, 30min and 3.5h buckets
        return _DEFAULT_INTERVALS[self]

    @classmethod
    def parse(cls, value: Union['Timeframe', str]) -> 'Timeframe':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            known = ", ".join(t.value for t in cls)
            raise MomentumConfigurationError(
                f"Unknown timeframe {value!r}; expected one of: {known}"
            ) from None


_SPAN_MS = {
    Timeframe.LAST_HOUR: 3_600_000,
    Timeframe.LAST_6_HOURS: 21_600_000,
    Timeframe.LAST_24_HOURS: 86_400_000,
    Timeframe.LAST_7_DAYS: 604_800_000,
}

_DEFAULT_INTERVALS = {
    Timeframe.LAST_HOUR: 12,
    Timeframe.LAST_6_HOURS: 24,
    Timeframe.LAST_24_HOURS: 48,
    Timeframe.LAST_7_DAYS: 48,
}

FALLBACK_INTERVAL_COUNT = 48


def resolve_span(timeframe: Union[Timeframe, str, int]) -> timedelta:
    """
    Accepts a preset (enum or label) or a raw span in milliseconds.
    """
    if isinstance(timeframe, bool):
        raise MomentumConfigurationError(f"Invalid timeframe: {timeframe!r}")
    if isinstance(timeframe, int):
        if timeframe <= 0:
            raise MomentumConfigurationError(
                f"Timeframe must be a positive number of milliseconds, got {timeframe}"
            )
        return timedelta(milliseconds=timeframe)
    return Timeframe.parse(timeframe).span


def resolve_interval_count(timeframe: Union[Timeframe, str, int], interval_count: Union[int, None]) -> int:
    if interval_count is None:
        if isinstance(timeframe, int) and not isinstance(timeframe, bool):
            return FALLBACK_INTERVAL_COUNT
        return Timeframe.parse(timeframe).default_interval_count
    if isinstance(interval_count, bool) or not isinstance(interval_count, int) or interval_count <= 0:
        raise MomentumConfigurationError(
            f"Interval count must be a positive integer, got {interval_count!r}"
        )
    return interval_count
