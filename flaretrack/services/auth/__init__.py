"""
Authentication service package.

Usage:
    from flaretrack.services.auth.dependencies import get_current_user_id

    @router.get("/protected")
    async def protected_route(user_id: UUID = Depends(get_current_user_id)):
        ...
"""
from flaretrack.services.auth.base import AuthProvider
from flaretrack.services.auth.session_provider import session_token_auth_provider


def get_auth_provider() -> AuthProvider:
    """Factory function to get the configured auth provider."""
    return session_token_auth_provider


__all__ = [
    "AuthProvider",
    "get_auth_provider",
    "session_token_auth_provider",
]
