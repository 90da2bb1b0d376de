"""CRUD operations for stored taste profiles."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamsense.models.base import utcnow
from streamsense.models.schemas import TasteProfile
from streamsense.models.taste_profile import UserTasteProfileRecord

_PROFILE_FIELDS = (
    "tone",
    "themes",
    "setting",
    "pacing",
    "complexity",
    "top_genres",
    "top_directors",
    "top_actors",
    "top_keywords",
    "discovery_opportunities",
    "watched_count",
    "avg_rating",
    "taste_signature",
    "confidence",
)


async def get_taste_profile(db: AsyncSession, user_id: str) -> UserTasteProfileRecord | None:
    result = await db.execute(
        select(UserTasteProfileRecord).where(UserTasteProfileRecord.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def save_taste_profile(db: AsyncSession, profile: TasteProfile) -> UserTasteProfileRecord:
    """Insert or replace a user's profile and stamp ``updated_at``."""
    record = await get_taste_profile(db, profile.user_id)
    if record is None:
        record = UserTasteProfileRecord(user_id=profile.user_id)
        db.add(record)

    for field in _PROFILE_FIELDS:
        setattr(record, field, getattr(profile, field))
    # Set explicitly: onupdate does not fire when no column value changed
    record.updated_at = utcnow()

    await db.commit()
    return record
