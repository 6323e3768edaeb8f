"""In-memory accumulation of pattern observations for one run."""
from typing import Dict, Iterable, List, Tuple

from flaretrack.services.pattern_types import PatternKey, PatternObservation, PatternRecord


class PatternAccumulator:
    """
    Maps PatternKey -> PatternRecord.

    Observations increment the count, update the running mean delay and
    refresh ``last_occurred``. Frozen records (from the sleep/weather
    correlators) replace whatever was accumulated under the same key.
    """

    def __init__(self):
        self._records: Dict[PatternKey, PatternRecord] = {}

    def __len__(self):
        return len(self._records)

    def __contains__(self, key: PatternKey) -> bool:
        return key in self._records

    def get(self, key: PatternKey):
        return self._records.get(key)

    def observe(self, observation: PatternObservation) -> None:
        record = self._records.get(observation.key)
        if record is None:
            self._records[observation.key] = PatternRecord.first(observation)
        elif not record.frozen:
            record.add(observation)

    def observe_all(self, observations: Iterable[PatternObservation]) -> None:
        for observation in observations:
            self.observe(observation)

    def freeze(self, key: PatternKey, record: PatternRecord) -> None:
        record.frozen = True
        self._records[key] = record

    def items(self) -> List[Tuple[PatternKey, PatternRecord]]:
        return list(self._records.items())
