"""Read access to a user's journal entries."""
import logging
from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flaretrack.models import FlareEntry
from flaretrack.services.pattern_types import Entry

logger = logging.getLogger(__name__)


class EntrySourceUnavailableError(Exception):
    """Raised when the entry history cannot be read."""
    pass


class EntryStore(ABC):
    """Source of a user's complete entry history."""

    @abstractmethod
    def fetch_entries(self, user_id: UUID) -> List[Entry]:
        """
        Return every entry for ``user_id`` ordered ascending by timestamp.

        Raises:
            EntrySourceUnavailableError: If the history cannot be read
        """
        pass


class SqlEntryStore(EntryStore):
    """EntryStore backed by the ``flare_entries`` table."""

    def __init__(self, db: Session):
        self.db = db

    def fetch_entries(self, user_id: UUID) -> List[Entry]:
        try:
            rows = (
                self.db.query(FlareEntry)
                .filter(FlareEntry.user_id == user_id)
                .order_by(FlareEntry.timestamp.asc(), FlareEntry.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error("Failed to read entries for user %s: %s", user_id, e)
            raise EntrySourceUnavailableError(f"Could not read entries for user {user_id}") from e

        return [Entry.from_row(row) for row in rows]
