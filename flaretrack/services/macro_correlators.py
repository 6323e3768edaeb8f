"""
Sleep and weather correlators.

These detect whole-history correlations that do not fit the per-entry
trigger model. Each emits at most one pattern per signal, with a confidence
computed directly as a ratio and capped like every other score. Those
confidences are final and are not passed through the ConfidenceScorer.
"""
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from flaretrack.config import settings
from flaretrack.services.pattern_types import (
    ANY_OUTCOME,
    FLARE,
    SLEEP,
    WEATHER,
    Entry,
    PatternKey,
    PatternRecord,
)


@dataclass(frozen=True)
class FrozenPattern:
    """A pattern whose record (including confidence) is already final."""

    key: PatternKey
    record: PatternRecord


class SleepCorrelator:
    """Flags flares that follow a night noticeably shorter than the user's average."""

    def __init__(
        self,
        min_flares: Optional[int] = None,
        deficit_hours: Optional[float] = None,
        min_low_flares: Optional[int] = None,
        cap: Optional[float] = None,
    ):
        self.min_flares = min_flares if min_flares is not None else settings.sleep_min_flares
        self.deficit_hours = deficit_hours if deficit_hours is not None else settings.sleep_deficit_hours
        self.min_low_flares = min_low_flares if min_low_flares is not None else settings.sleep_min_low_flares
        self.cap = cap if cap is not None else settings.pattern_confidence_cap

    def correlate(self, flares: Sequence[Entry]) -> List[FrozenPattern]:
        with_sleep = [flare for flare in flares if flare.sleep_hours is not None]
        if len(with_sleep) < self.min_flares:
            return []

        avg_sleep = sum(flare.sleep_hours for flare in with_sleep) / len(with_sleep)
        threshold = avg_sleep - self.deficit_hours
        low_sleep = [flare for flare in with_sleep if flare.sleep_hours < threshold]
        if len(low_sleep) < self.min_low_flares:
            return []

        key = PatternKey(SLEEP, f"poor sleep (<{threshold:.1f}h)", FLARE, ANY_OUTCOME)
        record = PatternRecord(
            occurrence_count=len(low_sleep),
            avg_delay_minutes=0.0,
            last_occurred=max(flare.timestamp for flare in low_sleep),
            confidence=min(self.cap, len(low_sleep) / len(with_sleep)),
            frozen=True,
        )
        return [FrozenPattern(key=key, record=record)]


class WeatherCorrelator:
    """Counts flares per weather condition."""

    def __init__(self, min_flares: Optional[int] = None, cap: Optional[float] = None):
        self.min_flares = min_flares if min_flares is not None else settings.weather_min_flares
        self.cap = cap if cap is not None else settings.pattern_confidence_cap

    def correlate(self, flares: Sequence[Entry]) -> List[FrozenPattern]:
        with_weather = [flare for flare in flares if flare.weather_condition]
        counts = Counter(flare.weather_condition for flare in with_weather)

        patterns = []
        for condition in sorted(counts):
            count = counts[condition]
            if count < self.min_flares:
                continue
            record = PatternRecord(
                occurrence_count=count,
                avg_delay_minutes=0.0,
                last_occurred=max(
                    flare.timestamp for flare in with_weather if flare.weather_condition == condition
                ),
                confidence=min(self.cap, count / len(with_weather)),
                frozen=True,
            )
            patterns.append(FrozenPattern(key=PatternKey(WEATHER, condition, FLARE, ANY_OUTCOME), record=record))
        return patterns
