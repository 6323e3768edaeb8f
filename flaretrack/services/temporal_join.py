"""
Temporal join: find antecedent entries preceding each flare.

For a lookback horizon ``h`` the search window is
``[outcome - (h + width) hours, outcome - h hours)``. Windows for
neighbouring horizons overlap, so an entry close to the flare falls into
several windows and is counted once per window. Closer antecedents therefore
accumulate more evidence, which acts as a recency weighting.
"""
from bisect import bisect_left
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Sequence

from flaretrack.config import settings
from flaretrack.services.note_miner import AntecedentExtractor, RegexNoteMiner
from flaretrack.services.pattern_types import (
    FLARE,
    FOOD,
    TRIGGER,
    Entry,
    PatternKey,
    PatternObservation,
)


@dataclass(frozen=True)
class LookbackWindow:
    horizon_hours: int
    start: datetime  # inclusive
    end: datetime  # exclusive

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class TemporalJoinEngine:
    """Emits trigger and note-mined food observations for each flare."""

    def __init__(
        self,
        lookback_hours: Optional[Sequence[int]] = None,
        window_hours: Optional[int] = None,
        extractor: Optional[AntecedentExtractor] = None,
    ):
        self.lookback_hours = tuple(
            lookback_hours if lookback_hours is not None else settings.pattern_lookback_hours
        )
        self.window_hours = window_hours if window_hours is not None else settings.pattern_window_hours
        self.extractor = extractor or RegexNoteMiner()

    def windows_for(self, outcome: Entry) -> List[LookbackWindow]:
        """Build the lookback windows for one outcome, one per horizon."""
        return [
            LookbackWindow(
                horizon_hours=hours,
                start=outcome.timestamp - timedelta(hours=hours + self.window_hours),
                end=outcome.timestamp - timedelta(hours=hours),
            )
            for hours in self.lookback_hours
        ]

    @staticmethod
    def entries_in_window(
        window: LookbackWindow, entries: Sequence[Entry], timestamps: Sequence[datetime]
    ) -> Iterator[Entry]:
        """
        Yield the entries inside ``window``.

        ``entries`` must be sorted ascending by timestamp and ``timestamps``
        must be their timestamps in the same order.
        """
        index = bisect_left(timestamps, window.start)
        while index < len(entries) and timestamps[index] < window.end:
            yield entries[index]
            index += 1

    def _observations_for(self, entry: Entry, outcome: Entry) -> Iterator[PatternObservation]:
        delay_minutes = (outcome.timestamp - entry.timestamp).total_seconds() / 60
        severity = outcome.outcome_severity

        for trigger in entry.triggers:
            yield PatternObservation(
                key=PatternKey(TRIGGER, trigger, FLARE, severity),
                delay_minutes=delay_minutes,
                observed_at=outcome.timestamp,
            )

        for token in self.extractor.extract(entry.note):
            yield PatternObservation(
                key=PatternKey(FOOD, token, FLARE, severity),
                delay_minutes=delay_minutes,
                observed_at=outcome.timestamp,
            )

    def join(
        self,
        outcome: Entry,
        entries: Sequence[Entry],
        timestamps: Optional[Sequence[datetime]] = None,
    ) -> List[PatternObservation]:
        """
        Collect every antecedent observation for ``outcome``.

        Args:
            outcome: The flare being explained
            entries: All entries for the user, sorted ascending by timestamp
            timestamps: Pre-computed entry timestamps (computed if omitted)

        Returns:
            List of observations, one per (window, entry, antecedent)
        """
        if timestamps is None:
            timestamps = [entry.timestamp for entry in entries]

        observations = []
        for window in self.windows_for(outcome):
            for entry in self.entries_in_window(window, entries, timestamps):
                observations.extend(self._observations_for(entry, outcome))
        return observations

    def join_all(self, outcomes: Sequence[Entry], entries: Sequence[Entry]) -> List[PatternObservation]:
        """Join every outcome against the full entry set."""
        ordered = sorted(entries, key=lambda entry: entry.timestamp)
        timestamps = [entry.timestamp for entry in ordered]

        observations = []
        for outcome in outcomes:
            observations.extend(self.join(outcome, ordered, timestamps))
        return observations
