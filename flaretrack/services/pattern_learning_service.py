"""Pattern learning service: mines a user's history for trigger -> flare patterns."""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flaretrack.config import settings
from flaretrack.models import PatternRun
from flaretrack.services.confidence import ConfidenceScorer, select_significant
from flaretrack.services.entry_store import EntrySourceUnavailableError, EntryStore, SqlEntryStore
from flaretrack.services.macro_correlators import SleepCorrelator, WeatherCorrelator
from flaretrack.services.pattern_accumulator import PatternAccumulator
from flaretrack.services.pattern_store import PatternSink, PatternWriteError, SqlPatternStore
from flaretrack.services.pattern_types import Entry, PatternKey, PatternRecord
from flaretrack.services.symptom_cooccurrence import SymptomCooccurrenceExtractor
from flaretrack.services.temporal_join import TemporalJoinEngine

logger = logging.getLogger(__name__)


STATUS_FETCHING = "fetching"
STATUS_INSUFFICIENT_DATA = "insufficient_data"
STATUS_MINING = "mining"
STATUS_SCORING = "scoring"
STATUS_PERSISTING = "persisting"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_pattern(key: PatternKey, record: PatternRecord) -> Dict:
    """Summary line for one pattern."""
    if record.avg_delay_minutes > 0:
        avg_delay = f"{_round_half_up(record.avg_delay_minutes / 60)}h"
    else:
        avg_delay = "immediate"
    return {
        "pattern": key.label,
        "confidence": f"{_round_half_up(record.confidence * 100)}%",
        "occurrences": record.occurrence_count,
        "avgDelay": avg_delay,
    }


@dataclass
class MiningResult:
    """Outcome of the pure (no I/O) part of a run."""

    total_outcomes: int
    patterns: List[Tuple[PatternKey, PatternRecord]]
    significant: List[Tuple[PatternKey, PatternRecord]]


@dataclass
class LearningSummary:
    status: str
    correlations_found: int = 0
    top_patterns: List[Dict] = field(default_factory=list)
    persisted_count: int = 0
    failed_count: int = 0
    run_id: Optional[int] = None

    def to_dict(self) -> Dict:
        result = {
            "status": "ok" if self.status == STATUS_COMPLETED else self.status,
            "correlationsFound": self.correlations_found,
            "topPatterns": self.top_patterns,
            "persistedCount": self.persisted_count,
            "failedCount": self.failed_count,
            "runId": self.run_id,
        }
        if self.status == STATUS_INSUFFICIENT_DATA:
            result["message"] = "Need more data to learn patterns"
        return result


class PatternLearningService:
    """
    Batch pattern discovery over a user's complete entry history.

    Every call recomputes from scratch: entries are fetched, mined, scored,
    filtered and the survivors upserted. Nothing from earlier runs is merged
    in, and patterns that drop out are not deleted.
    """

    def __init__(
        self,
        db: Session,
        entry_store: Optional[EntryStore] = None,
        pattern_sink: Optional[PatternSink] = None,
        temporal_join: Optional[TemporalJoinEngine] = None,
        symptom_extractor: Optional[SymptomCooccurrenceExtractor] = None,
        sleep_correlator: Optional[SleepCorrelator] = None,
        weather_correlator: Optional[WeatherCorrelator] = None,
        scorer: Optional[ConfidenceScorer] = None,
        min_entries: Optional[int] = None,
        summary_size: Optional[int] = None,
    ):
        self.db = db
        self.entry_store = entry_store or SqlEntryStore(db)
        self.pattern_sink = pattern_sink or SqlPatternStore(db)
        self.temporal_join = temporal_join or TemporalJoinEngine()
        self.symptom_extractor = symptom_extractor or SymptomCooccurrenceExtractor()
        self.sleep_correlator = sleep_correlator or SleepCorrelator()
        self.weather_correlator = weather_correlator or WeatherCorrelator()
        self.scorer = scorer or ConfidenceScorer()
        self.min_entries = min_entries if min_entries is not None else settings.pattern_min_entries
        self.summary_size = summary_size if summary_size is not None else settings.pattern_summary_size

    def collect(self, entries: Sequence[Entry]) -> Tuple[int, List[Tuple[PatternKey, PatternRecord]]]:
        """Run every miner over ``entries``; returns the flare count and the unscored patterns."""
        flares = [entry for entry in entries if entry.is_flare]
        accumulator = PatternAccumulator()

        accumulator.observe_all(self.temporal_join.join_all(flares, entries))
        for flare in flares:
            accumulator.observe_all(self.symptom_extractor.extract(flare))
        logger.debug("Accumulated %d candidate patterns from %d flares", len(accumulator), len(flares))

        for frozen in self.sleep_correlator.correlate(flares) + self.weather_correlator.correlate(flares):
            accumulator.freeze(frozen.key, frozen.record)

        return len(flares), accumulator.items()

    def score(
        self, total_outcomes: int, patterns: List[Tuple[PatternKey, PatternRecord]]
    ) -> List[Tuple[PatternKey, PatternRecord]]:
        self.scorer.score_all(patterns, total_outcomes=total_outcomes)
        significant = select_significant(patterns)
        logger.debug("%d of %d patterns are significant", len(significant), len(patterns))
        return significant

    def mine(self, entries: Sequence[Entry]) -> MiningResult:
        """
        Run every miner over ``entries`` and score the results.

        Pure computation: no database access.
        """
        total_outcomes, patterns = self.collect(entries)
        significant = self.score(total_outcomes, patterns)
        return MiningResult(total_outcomes=total_outcomes, patterns=patterns, significant=significant)

    def _persist(
        self, user_id: UUID, significant: List[Tuple[PatternKey, PatternRecord]], run_id: int
    ) -> Tuple[int, int]:
        persisted = 0
        failed = 0
        for key, record in significant:
            try:
                self.pattern_sink.upsert(user_id, key, record, run_id=run_id)
                persisted += 1
            except PatternWriteError as e:
                failed += 1
                logger.warning("Failed to persist pattern %s for user %s: %s", key.label, user_id, e)
        return persisted, failed

    def _set_status(self, run: PatternRun, status: str) -> None:
        run.status = status
        self.db.commit()

    def _mark_failed(self, run: PatternRun, user_id: UUID, error: Exception) -> None:
        try:
            self.db.rollback()
            run.status = STATUS_FAILED
            run.error_message = str(error)
            run.completed_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Could not record failure of pattern run for user %s", user_id)

    def learn_patterns(self, user_id: UUID) -> LearningSummary:
        """
        Run the full pipeline for one user.

        FETCHING -> (INSUFFICIENT_DATA | MINING) -> SCORING -> PERSISTING -> COMPLETED

        Args:
            user_id: Already-authenticated user ID

        Returns:
            LearningSummary with the survivors and the top patterns

        Raises:
            EntrySourceUnavailableError: If the entry history cannot be read.
                Nothing is persisted in that case.
        """
        run = PatternRun(user_id=user_id, status=STATUS_FETCHING, started_at=datetime.now(timezone.utc))
        self.db.add(run)
        self.db.commit()

        try:
            entries = self.entry_store.fetch_entries(user_id)
        except EntrySourceUnavailableError as e:
            logger.error("Pattern run for user %s aborted: %s", user_id, e)
            self._mark_failed(run, user_id, e)
            raise

        run.entries_analyzed = len(entries)
        logger.info("Learning patterns for user %s from %d entries", user_id, len(entries))

        if len(entries) < self.min_entries:
            logger.info(
                "Insufficient data for user %s: %d entries (need %d)",
                user_id,
                len(entries),
                self.min_entries,
            )
            run.status = STATUS_INSUFFICIENT_DATA
            run.completed_at = datetime.now(timezone.utc)
            self.db.commit()
            return LearningSummary(status=STATUS_INSUFFICIENT_DATA, run_id=run.id)

        try:
            self._set_status(run, STATUS_MINING)
            total_outcomes, patterns = self.collect(entries)
            run.outcomes_analyzed = total_outcomes

            self._set_status(run, STATUS_SCORING)
            significant = self.score(total_outcomes, patterns)
            run.correlations_found = len(significant)

            self._set_status(run, STATUS_PERSISTING)
            persisted, failed = self._persist(user_id, significant, run.id)

            run.status = STATUS_COMPLETED
            run.persisted_count = persisted
            run.failed_count = failed
            run.completed_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception as e:
            logger.exception("Pattern run for user %s failed", user_id)
            self._mark_failed(run, user_id, e)
            raise

        logger.info(
            "Pattern run %s for user %s: %d significant, %d persisted, %d failed",
            run.id,
            user_id,
            len(significant),
            persisted,
            failed,
        )

        return LearningSummary(
            status=STATUS_COMPLETED,
            correlations_found=len(significant),
            top_patterns=[format_pattern(key, record) for key, record in significant[: self.summary_size]],
            persisted_count=persisted,
            failed_count=failed,
            run_id=run.id,
        )
