"""Session-token authentication provider."""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session as DBSession

from flaretrack.config import settings
from flaretrack.models.session import Session
from flaretrack.services.auth.base import AuthProvider


class SessionTokenAuthProvider(AuthProvider):
    """
    Resolves users from session tokens stored in the ``sessions`` table.

    The token is read from an ``Authorization: Bearer`` header first and
    falls back to the session cookie.
    """

    def _token_from_request(self, request: Request) -> Optional[str]:
        header = request.headers.get("authorization", "")
        if header.lower().startswith("bearer "):
            token = header[7:].strip()
            if token:
                return token
        return request.cookies.get(settings.session_cookie_name)

    async def get_user_id_from_request(self, db: DBSession, request: Request) -> Optional[UUID]:
        token = self._token_from_request(request)
        if not token:
            return None

        now = datetime.now(timezone.utc)
        session = db.query(Session).filter(
            Session.token == token,
            Session.expires_at > now
        ).first()

        if not session:
            return None

        return session.user_id


session_token_auth_provider = SessionTokenAuthProvider()
