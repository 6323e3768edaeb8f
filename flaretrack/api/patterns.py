"""Pattern learning API endpoints."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from flaretrack.database import get_db
from flaretrack.services.auth.dependencies import get_current_user_id
from flaretrack.services.entry_store import EntrySourceUnavailableError
from flaretrack.services.pattern_learning_service import PatternLearningService
from flaretrack.services.pattern_store import SqlPatternStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patterns", tags=["patterns"])


class LearnPatternsRequest(BaseModel):
    """Request model for running pattern learning."""

    async_mode: bool = False  # Enqueue on the worker instead of blocking


def correlation_to_dict(correlation) -> dict:
    return {
        "id": correlation.id,
        "triggerType": correlation.trigger_type,
        "triggerValue": correlation.trigger_value,
        "outcomeType": correlation.outcome_type,
        "outcomeValue": correlation.outcome_value,
        "occurrenceCount": correlation.occurrence_count,
        "confidence": correlation.confidence,
        "avgDelayMinutes": correlation.avg_delay_minutes,
        "lastOccurred": correlation.last_occurred.isoformat() if correlation.last_occurred else None,
        "updatedAt": correlation.updated_at.isoformat() if correlation.updated_at else None,
        "lastRunId": correlation.last_run_id,
    }


@router.post("/learn")
async def learn_patterns(
    request: Optional[LearnPatternsRequest] = Body(None),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Mine the caller's full history for trigger -> flare patterns.

    In sync mode (default) the summary is returned directly. In async mode
    the run is queued and 202 is returned.
    """
    if request is not None and request.async_mode:
        from flaretrack.workers.pattern_worker import learn_patterns_for_user

        learn_patterns_for_user.send(str(user_id))
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content={"status": "queued"})

    service = PatternLearningService(db)
    try:
        summary = service.learn_patterns(user_id)
    except EntrySourceUnavailableError:
        logger.warning("Pattern learning failed for user %s: entry history unavailable", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Pattern learning failed",
        )

    return summary.to_dict()


@router.get("")
async def list_patterns(
    current_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """List the caller's persisted patterns, best first."""
    store = SqlPatternStore(db)
    correlations = store.list_patterns(user_id, current_only=current_only, limit=limit)
    return {"patterns": [correlation_to_dict(c) for c in correlations]}
