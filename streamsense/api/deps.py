"""Request-scoped dependencies: user context and per-user services."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from streamsense.services.sessions import UserSession, UserSessionRegistry


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """User id from the ``X-User-Id`` header, raising 401 if absent."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return x_user_id.strip()


def get_registry(request: Request) -> UserSessionRegistry:
    return request.app.state.registry


def get_user_session(
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UserSessionRegistry, Depends(get_registry)],
) -> UserSession:
    return registry.get(user_id)
