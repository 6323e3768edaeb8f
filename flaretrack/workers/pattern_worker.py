"""
Dramatiq worker for background pattern learning runs.

Runs are full recomputations over a user's history, so long-lived users can
take a while. The API enqueues them here instead of blocking the request.
"""
import logging
from uuid import UUID

import dramatiq

# Import broker setup (must be before actor definitions)
from flaretrack.workers import redis_broker  # noqa: F401
from flaretrack.database import SessionLocal
from flaretrack.services.pattern_learning_service import PatternLearningService

logger = logging.getLogger(__name__)


@dramatiq.actor(max_retries=2, min_backoff=5000, max_backoff=60000)
def learn_patterns_for_user(user_id: str):
    """
    Run pattern learning for one user.

    Fetch failures propagate so Dramatiq retries the message.

    Args:
        user_id: User ID as a string (message payloads must be JSON)
    """
    db = SessionLocal()

    try:
        service = PatternLearningService(db)
        summary = service.learn_patterns(UUID(user_id))
        logger.info(
            "Background pattern run %s for user %s finished: %s",
            summary.run_id,
            user_id,
            summary.status,
        )
        return summary.to_dict()
    finally:
        db.close()
