"""Persistence of discovered patterns, upserted by natural key."""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flaretrack.models import Correlation, PatternRun
from flaretrack.services.pattern_types import PatternKey, PatternRecord

logger = logging.getLogger(__name__)


class PatternWriteError(Exception):
    """Raised when a single pattern could not be written."""
    pass


class PatternSink(ABC):
    """Keyed upsert store for discovered patterns."""

    @abstractmethod
    def upsert(
        self,
        user_id: UUID,
        key: PatternKey,
        record: PatternRecord,
        run_id: Optional[int] = None,
    ) -> None:
        """
        Insert the pattern if its natural key is absent, otherwise overwrite
        its counts, confidence, delay and last occurrence.

        Raises:
            PatternWriteError: If the write fails
        """
        pass


class SqlPatternStore(PatternSink):
    """PatternSink backed by the ``correlations`` table."""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, user_id: UUID, key: PatternKey) -> Optional[Correlation]:
        return (
            self.db.query(Correlation)
            .filter(
                Correlation.user_id == user_id,
                Correlation.trigger_type == key.antecedent_type,
                Correlation.trigger_value == key.antecedent_value,
                Correlation.outcome_type == key.outcome_type,
                Correlation.outcome_value == key.outcome_value,
            )
            .first()
        )

    def upsert(
        self,
        user_id: UUID,
        key: PatternKey,
        record: PatternRecord,
        run_id: Optional[int] = None,
    ) -> None:
        now = datetime.now(timezone.utc)
        try:
            # Savepoint so one failed row does not poison the run's transaction
            with self.db.begin_nested():
                correlation = self._find(user_id, key)
                if correlation is None:
                    correlation = Correlation(
                        user_id=user_id,
                        trigger_type=key.antecedent_type,
                        trigger_value=key.antecedent_value,
                        outcome_type=key.outcome_type,
                        outcome_value=key.outcome_value,
                    )
                    self.db.add(correlation)

                correlation.occurrence_count = record.occurrence_count
                correlation.confidence = record.confidence
                correlation.avg_delay_minutes = record.avg_delay_minutes
                correlation.last_occurred = record.last_occurred
                correlation.updated_at = now
                correlation.last_run_id = run_id
                correlation.last_computed_at = now
        except SQLAlchemyError as e:
            raise PatternWriteError(f"Could not upsert pattern {key.label}") from e

    def list_patterns(
        self, user_id: UUID, current_only: bool = False, limit: int = 50
    ) -> List[Correlation]:
        """
        Persisted patterns for a user, best first.

        With ``current_only`` only rows written by the user's most recent
        completed run are returned.
        """
        query = self.db.query(Correlation).filter(Correlation.user_id == user_id)

        if current_only:
            latest_run = (
                self.db.query(PatternRun)
                .filter(PatternRun.user_id == user_id, PatternRun.status == "completed")
                .order_by(PatternRun.started_at.desc(), PatternRun.id.desc())
                .first()
            )
            if latest_run is None:
                return []
            query = query.filter(Correlation.last_run_id == latest_run.id)

        return (
            query.order_by(Correlation.confidence.desc(), Correlation.occurrence_count.desc(), Correlation.id)
            .limit(limit)
            .all()
        )
