"""FastAPI dependencies for authentication."""
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from flaretrack.database import get_db
from flaretrack.services.auth import get_auth_provider


async def get_current_user_id(
    request: Request,
    db: Session = Depends(get_db)
) -> UUID:
    """
    Get the ID of the currently authenticated user.

    Raises 401 if not authenticated.
    """
    auth_provider = get_auth_provider()
    user_id = await auth_provider.get_user_id_from_request(db, request)

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    return user_id
