from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql://postgres:postgres@db:5432/flaretrack"
    redis_url: str = "redis://redis:6379/0"

    log_level: str = "INFO"

    # Auth settings
    session_cookie_name: str = "flaretrack_session"

    # Pattern learning thresholds
    pattern_min_entries: int = 10  # Below this the run exits as insufficient_data
    pattern_lookback_hours: List[int] = [0, 2, 6, 12, 24, 48, 72]
    pattern_window_hours: int = 6  # Width of each lookback window
    pattern_min_occurrences: int = 2
    pattern_min_confidence: float = 0.2
    pattern_max_results: int = 50
    pattern_summary_size: int = 10
    pattern_confidence_cap: float = 0.95
    pattern_delay_boost: float = 0.1

    # Sleep / weather correlators
    sleep_min_flares: int = 3
    sleep_deficit_hours: float = 1.0
    sleep_min_low_flares: int = 2
    weather_min_flares: int = 3

    class Config:
        env_file = ".env"


settings = Settings()
