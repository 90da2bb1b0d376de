"""CRUD operations for per-user genre affinity."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamsense.constants import AFFINITY_WEIGHTS
from streamsense.genres import genre_name
from streamsense.models.affinity import UserGenreAffinity
from streamsense.models.base import utcnow


def affinity_action(action: str, rating: int | None = None) -> str | None:
    """Map an interaction to its affinity weight key (ratings split high/low, 3 is neutral)."""
    if action == "rate":
        if rating is None or rating == 3:
            return None
        return "rate_high" if rating >= 4 else "rate_low"
    return action if action in AFFINITY_WEIGHTS else None


async def get_user_affinities(db: AsyncSession, user_id: str) -> Sequence[UserGenreAffinity]:
    """Affinity rows for a user, strongest first."""
    result = await db.execute(
        select(UserGenreAffinity)
        .where(UserGenreAffinity.user_id == user_id)
        .order_by(UserGenreAffinity.affinity_score.desc(), UserGenreAffinity.id)
    )
    return result.scalars().all()


async def track_genre_interaction(
    db: AsyncSession,
    user_id: str,
    genre_ids: list[int],
    action: str,
) -> list[UserGenreAffinity]:
    """Add the action's weight to each genre's affinity row, creating rows as needed."""
    weight = AFFINITY_WEIGHTS[action]
    if not genre_ids:
        return []

    result = await db.execute(
        select(UserGenreAffinity).where(
            UserGenreAffinity.user_id == user_id,
            UserGenreAffinity.genre_id.in_(genre_ids),
        )
    )
    rows = {row.genre_id: row for row in result.scalars().all()}
    now = utcnow()

    touched: list[UserGenreAffinity] = []
    for gid in dict.fromkeys(genre_ids):
        row = rows.get(gid)
        if row is None:
            row = UserGenreAffinity(
                user_id=user_id,
                genre_id=gid,
                genre_name=genre_name(gid),
                affinity_score=0.0,
                interaction_count=0,
            )
            db.add(row)
        row.affinity_score += weight
        row.interaction_count += 1
        row.last_interaction_at = now
        touched.append(row)

    await db.commit()
    return touched
