"""PatternRun model for tracking pattern learning execution."""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from flaretrack.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class PatternRun(Base):
    """Records each pattern learning run with its outcome."""

    __tablename__ = "pattern_runs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # fetching, insufficient_data, mining, scoring, persisting, completed, failed
    status = Column(String, nullable=False, default="fetching")
    started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)

    # Analysis scope
    entries_analyzed = Column(Integer, nullable=False, default=0)
    outcomes_analyzed = Column(Integer, nullable=False, default=0)

    # Results
    correlations_found = Column(Integer, nullable=False, default=0)  # survivors attempted
    persisted_count = Column(Integer, nullable=False, default=0)  # confirmed writes
    failed_count = Column(Integer, nullable=False, default=0)

    # Relationships
    user = relationship("User", back_populates="pattern_runs")
    correlations = relationship("Correlation", back_populates="last_run")

    def __repr__(self):
        return f"<PatternRun(id={self.id}, user_id={self.user_id}, status={self.status})>"
