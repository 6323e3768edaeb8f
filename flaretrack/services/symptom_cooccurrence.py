"""Symptom co-occurrence within a single flare."""
from typing import List

from flaretrack.services.pattern_types import SYMPTOM, Entry, PatternKey, PatternObservation


class SymptomCooccurrenceExtractor:
    """
    Emits ``symptom:A -> symptom:B`` for every ordered pair of distinct
    symptoms on a flare. Both directions are generated, with no delay.
    """

    def extract(self, flare: Entry) -> List[PatternObservation]:
        symptoms = flare.symptoms
        return [
            PatternObservation(
                key=PatternKey(SYMPTOM, first, SYMPTOM, second),
                delay_minutes=0.0,
                observed_at=flare.timestamp,
            )
            for first in symptoms
            for second in symptoms
            if first != second
        ]
