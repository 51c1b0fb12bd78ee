from pydantic_settings import BaseSettings, SettingsConfigDict


class MomentumSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MOMENTUM_")

    DEFAULT_TIMEFRAME: str = "24h"

    # Scoring constants
    GROWTH_FACTOR: float = 1.2
    RECENT_FRACTION: float = 0.25  # Share of the timeframe counted as "recent"
    ACTIVITY_HISTORY_SIZE: int = 50
    DEFAULT_ACTIVITY_PERCENTILE: float = 50.0

    # Trending / display
    TRENDING_LIMIT: int = 5
    TRENDING_MOMENTUM_THRESHOLD: float = 0.5
    TRENDING_VELOCITY_THRESHOLD: float = 1.0
    DISPLAY_LIMIT: int = 20
    COMPACT_DISPLAY_LIMIT: int = 10

    RESYNC_INTERVAL_SECONDS: int = 30


settings = MomentumSettings()
