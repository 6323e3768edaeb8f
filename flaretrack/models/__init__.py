"""
Database models for FlareTrack.

Import all models here so Alembic can detect them for migrations.
"""

from flaretrack.database import Base
from flaretrack.models.user import User
from flaretrack.models.session import Session
from flaretrack.models.flare_entry import FlareEntry
from flaretrack.models.pattern_run import PatternRun
from flaretrack.models.correlation import Correlation

__all__ = [
    "Base",
    "User",
    "Session",
    "FlareEntry",
    "PatternRun",
    "Correlation",
]
