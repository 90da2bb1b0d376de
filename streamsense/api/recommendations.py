"""Recommendations API endpoints."""

import logging
from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from streamsense.api.deps import get_user_session
from streamsense.constants import DEFAULT_RECOMMENDATION_LIMIT
from streamsense.models.schemas import MediaTypeFilter, SmartRecommendations, UnifiedContent
from streamsense.services.sessions import UserSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


class BrowseResponse(BaseModel):
    """Filtered view of the cached candidate pool."""

    media_type: str
    genre: str
    count: int
    items: list[UnifiedContent]
    last_fetched: datetime | None = None
    error: str | None = None


class RefreshResponse(BaseModel):
    status: str
    count: int
    error: str | None = None


@router.get("", response_model=SmartRecommendations)
async def get_recommendations(
    session: Annotated[UserSession, Depends(get_user_session)],
    media_type: MediaTypeFilter = "mixed",
    limit: Annotated[int, Query(ge=1, le=100)] = DEFAULT_RECOMMENDATION_LIMIT,
    include_discovery: bool = True,
    force_refresh: bool = False,
) -> SmartRecommendations:
    """Categorized recommendations (forYou, becauseYouLiked, discovery, trending)."""
    return await session.scorer.get_smart_recommendations(
        session.user_id,
        media_type=media_type,
        limit=limit,
        include_discovery=include_discovery,
        force_refresh=force_refresh,
    )


@router.get("/browse", response_model=BrowseResponse)
async def browse_recommendations(
    session: Annotated[UserSession, Depends(get_user_session)],
    media_type: Literal["all", "movie", "tv"] = "all",
    genre: str = "All",
) -> BrowseResponse:
    """Filter the candidate pool by media type and browse genre."""
    try:
        items = await session.recommendations.get_filtered(media_type, genre)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    cache = session.recommendations.cache
    return BrowseResponse(
        media_type=media_type,
        genre=genre,
        count=len(items),
        items=items,
        last_fetched=cache.last_fetched if cache is not None else None,
        error=session.recommendations.error,
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_recommendations(
    session: Annotated[UserSession, Depends(get_user_session)],
) -> RefreshResponse:
    """Forget what this session has shown and rebuild the candidate pool."""
    cache = await session.recommendations.refresh(force=True)
    logger.info(f"Recommendation pool refreshed for {session.user_id}: {len(cache.all)} items")
    return RefreshResponse(
        status="error" if session.recommendations.error else "success",
        count=len(cache.all),
        error=session.recommendations.error,
    )
