from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid

from flaretrack.database import Base


class User(Base):
    """User owning journal entries and discovered patterns."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    entries = relationship(
        "FlareEntry", back_populates="user", cascade="all, delete-orphan"
    )
    correlations = relationship(
        "Correlation", back_populates="user", cascade="all, delete-orphan"
    )
    pattern_runs = relationship(
        "PatternRun", back_populates="user", cascade="all, delete-orphan"
    )
    sessions = relationship(
        "Session", back_populates="user", cascade="all, delete-orphan"
    )
