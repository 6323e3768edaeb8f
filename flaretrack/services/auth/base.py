"""Abstract base class for authentication providers."""
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session as DBSession


class AuthProvider(ABC):
    """
    Resolves the caller's identity.

    Authentication itself (login, token issuance) happens elsewhere. A
    provider only turns an incoming request into an already-verified user ID.
    """

    @abstractmethod
    async def get_user_id_from_request(self, db: DBSession, request: Request) -> Optional[UUID]:
        """
        Extract and validate the user from the request.

        Returns the user ID if authenticated, None otherwise.
        """
        pass
