"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current actor extraction from the bearer token
- Optional actor for public endpoints
- Moderator capability checks
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from comment_engine.auth.models import Actor
from comment_engine.auth.security import decode_access_token
from comment_engine.core.context import set_actor_id


def get_token_from_header(request: Request) -> str | None:
    """Extract the Bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_actor(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Actor:
    """Get the authenticated actor.

    Raises:
        HTTPException(401): If the token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    actor = Actor.from_claims(payload)
    set_actor_id(actor.id)
    return actor


async def get_optional_actor(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Actor | None:
    """Get the actor if a valid token was sent, None otherwise.

    Used by public listings that still render ``user_interaction``.
    """
    if not token:
        return None

    try:
        payload = decode_access_token(token)
    except JWTError:
        return None

    actor = Actor.from_claims(payload)
    set_actor_id(actor.id)
    return actor


async def require_moderator(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Require moderator (or admin) capability."""
    if not actor.can_moderate:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator permission required",
        )
    return actor


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
OptionalActor = Annotated[Actor | None, Depends(get_optional_actor)]
ModeratorActor = Annotated[Actor, Depends(require_moderator)]
