from __future__ import annotations

"""Caller authentication and user resolution."""

from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from docintel.app.settings import settings


@dataclass(frozen=True)
class AuthContext:
    """Resolved authentication context for the current request."""
    api_key: str | None
    user_id: str


async def require_user(request: Request) -> AuthContext:
    """Resolve the calling user from an API key, or allow anonymous access if configured."""
    key_map = settings.api_key_map
    if not key_map:
        if settings.allow_anonymous:
            return AuthContext(api_key=None, user_id=settings.default_user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    api_key = _extract_api_key(request)
    user_id = key_map.get(api_key) if api_key else None
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthContext(api_key=api_key, user_id=user_id)


def _extract_api_key(request: Request) -> str | None:
    """Extract API key from headers."""
    header_key = request.headers.get("x-api-key")
    if header_key:
        return header_key.strip()
    auth = request.headers.get("authorization")
    if not auth:
        return None
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None
