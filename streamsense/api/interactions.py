"""Interaction API endpoint.

One request records a watchlist/watch/rating event and feeds it to every
downstream signal: genre affinity, the DNA queue and the taste profile.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from streamsense.api.deps import get_registry, get_user_session
from streamsense.db import get_db
from streamsense.db.crud.affinity import affinity_action, track_genre_interaction
from streamsense.db.crud.watchlist import apply_watchlist_interaction, get_taste_state
from streamsense.models.schemas import InteractionCreate
from streamsense.services.sessions import UserSession, UserSessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interactions", tags=["interactions"])

# Actions that can bring a title into the taste history or change its rating
TASTE_ACTIONS = {"start_watching", "complete_watching", "rate"}


class InteractionResult(BaseModel):
    status: str
    watchlist_status: str | None = None
    affinity_action: str | None = None
    dna_queued: bool = False
    taste_signature: str | None = None


@router.post("", response_model=InteractionResult)
async def record_interaction(
    interaction: InteractionCreate,
    session: Annotated[UserSession, Depends(get_user_session)],
    registry: Annotated[UserSessionRegistry, Depends(get_registry)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InteractionResult:
    """Record an interaction and update affinity, DNA and taste signals."""
    counted_before, previous_rating = await get_taste_state(
        db, session.user_id, interaction.tmdb_id, interaction.media_type
    )
    item = await apply_watchlist_interaction(db, session.user_id, interaction)

    action = affinity_action(interaction.action, interaction.rating)
    if action is not None and interaction.genre_ids:
        await track_genre_interaction(db, session.user_id, interaction.genre_ids, action)

    dna_queued = False
    if interaction.action != "remove_from_watchlist":
        dna_queued = await registry.dna_queue.enqueue(interaction.tmdb_id, interaction.media_type)

    signature = None
    if interaction.action in TASTE_ACTIONS:
        profile = await session.taste.update_after_interaction(
            interaction.tmdb_id,
            interaction.media_type,
            rating=interaction.rating,
            genre_ids=interaction.genre_ids,
            counted_before=counted_before,
            previous_rating=previous_rating,
        )
        signature = profile.taste_signature if profile is not None else None

    logger.info(
        f"Interaction {interaction.action} on {interaction.media_type.value}-{interaction.tmdb_id} "
        f"by {session.user_id} (affinity={action}, dna_queued={dna_queued})"
    )
    return InteractionResult(
        status="success",
        watchlist_status=item.status.value if item is not None else None,
        affinity_action=action,
        dna_queued=dna_queued,
        taste_signature=signature,
    )
