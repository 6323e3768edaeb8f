"""Correlation model for discovered antecedent -> outcome patterns."""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from flaretrack.database import Base


class Correlation(Base):
    """
    A persisted pattern, keyed by user and the four PatternKey fields.

    Rows are upserted by natural key on every run. Rows that a later run does
    not reconfirm are left in place; ``last_run_id`` tells consumers which run
    last wrote the row so they can filter out stale patterns.
    """

    __tablename__ = "correlations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Natural key
    trigger_type = Column(String(32), nullable=False)  # 'trigger', 'food', 'symptom', 'sleep', 'weather'
    trigger_value = Column(String(255), nullable=False)
    outcome_type = Column(String(32), nullable=False)  # 'flare', 'symptom'
    outcome_value = Column(String(255), nullable=False)  # severity, 'any', or a symptom

    occurrence_count = Column(Integer, nullable=False)
    confidence = Column(Float, nullable=False)  # 0.0-0.95
    avg_delay_minutes = Column(Float, nullable=False, default=0.0)
    last_occurred = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Staleness marker
    last_run_id = Column(Integer, ForeignKey("pattern_runs.id", ondelete="SET NULL"), nullable=True, index=True)
    last_computed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="correlations")
    last_run = relationship("PatternRun", back_populates="correlations")

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "trigger_type",
            "trigger_value",
            "outcome_type",
            "outcome_value",
            name="uq_correlations_natural_key",
        ),
    )

    def __repr__(self):
        return (
            f"<Correlation(id={self.id}, {self.trigger_type}:{self.trigger_value} -> "
            f"{self.outcome_type}:{self.outcome_value}, confidence={self.confidence})>"
        )
