"""Taste profile API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from streamsense.api.deps import get_user_session
from streamsense.models.schemas import TasteProfileResponse
from streamsense.services.sessions import UserSession

router = APIRouter(prefix="/taste-profile", tags=["taste-profile"])


@router.get("", response_model=TasteProfileResponse)
async def get_taste_profile(
    session: Annotated[UserSession, Depends(get_user_session)],
) -> TasteProfileResponse:
    """Current profile; a stale one is served while it rebuilds in the background."""
    await session.taste.load()
    return session.taste.snapshot()


@router.post("/refresh", response_model=TasteProfileResponse)
async def refresh_taste_profile(
    session: Annotated[UserSession, Depends(get_user_session)],
) -> TasteProfileResponse:
    await session.taste.refresh_profile()
    return session.taste.snapshot()
