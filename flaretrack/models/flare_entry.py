from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    Uuid,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from flaretrack.database import Base
from flaretrack.models.types import JSONType


class FlareEntry(Base):
    """A single journal entry: flare, medication, note, energy check-in, ..."""

    __tablename__ = "flare_entries"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    timestamp = Column(DateTime(timezone=True), nullable=False)
    entry_type = Column(String(32), nullable=False)  # 'flare', 'medication', 'note', 'energy', ...
    severity = Column(String(16), nullable=True)  # 'mild', 'moderate', 'severe'

    symptoms = Column(JSONType, default=list)  # ["headache", "nausea"]
    triggers = Column(JSONType, default=list)  # ["pollen", "stress"]
    note = Column(Text, nullable=True)

    # Context snapshots captured at logging time
    environmental_data = Column(JSONType, nullable=True)
    # Format: {"weather": {"condition": "rain", "temperature": 61, "humidity": 80}, ...}
    physiological_data = Column(JSONType, nullable=True)
    # Format: {"sleep": {"duration": 6.5}, "heartRate": 72, ...}

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="entries")

    __table_args__ = (
        Index("idx_flare_entries_user_timestamp", "user_id", "timestamp"),
        Index("idx_flare_entries_entry_type", "entry_type"),
    )

    def __repr__(self):
        return f"<FlareEntry(id={self.id}, type={self.entry_type}, timestamp={self.timestamp})>"
