"""Confidence scoring and selection of significant patterns."""
from typing import Iterable, List, Optional, Tuple

from flaretrack.config import settings
from flaretrack.services.pattern_types import PatternKey, PatternRecord


class ConfidenceScorer:
    """
    Heuristic confidence for accumulated patterns.

        base       = min(cap, occurrences / max(total_outcomes, 1))
        confidence = min(cap, base + delay_boost if avg_delay > 0 else base)

    The cap keeps scores below certainty since this is frequency counting,
    not a calibrated test.
    """

    def __init__(self, cap: Optional[float] = None, delay_boost: Optional[float] = None):
        self.cap = cap if cap is not None else settings.pattern_confidence_cap
        self.delay_boost = delay_boost if delay_boost is not None else settings.pattern_delay_boost

    def score(self, record: PatternRecord, total_outcomes: int) -> float:
        base = min(self.cap, record.occurrence_count / max(total_outcomes, 1))
        boost = self.delay_boost if record.avg_delay_minutes > 0 else 0.0
        return min(self.cap, base + boost)

    def score_all(self, records: Iterable[Tuple[PatternKey, PatternRecord]], total_outcomes: int) -> None:
        """Assign confidence in place to every non-frozen record."""
        for _key, record in records:
            if not record.frozen:
                record.confidence = self.score(record, total_outcomes)


def select_significant(
    records: Iterable[Tuple[PatternKey, PatternRecord]],
    min_occurrences: Optional[int] = None,
    min_confidence: Optional[float] = None,
    max_results: Optional[int] = None,
) -> List[Tuple[PatternKey, PatternRecord]]:
    """
    Keep patterns clearing both thresholds, best first, capped in number.

    Ties on confidence are broken by occurrence count (descending) and then
    by key so the ranking is stable across runs.
    """
    if min_occurrences is None:
        min_occurrences = settings.pattern_min_occurrences
    if min_confidence is None:
        min_confidence = settings.pattern_min_confidence
    if max_results is None:
        max_results = settings.pattern_max_results

    survivors = [
        (key, record)
        for key, record in records
        if record.occurrence_count >= min_occurrences and record.confidence >= min_confidence
    ]
    survivors.sort(key=lambda item: item[0].sort_key())
    survivors.sort(key=lambda item: (item[1].confidence, item[1].occurrence_count), reverse=True)
    return survivors[:max_results]
