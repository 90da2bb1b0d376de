"""Taste profile rebuilds and incremental updates against the user-data store."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from streamsense.db.crud.content_dna import get_content_dna_many
from streamsense.db.crud.taste_profile import get_taste_profile, save_taste_profile
from streamsense.db.crud.watchlist import counts_toward_taste, get_user_watchlist, watchlist_ref
from streamsense.db.errors import is_missing_table_error
from streamsense.models.base import ensure_utc
from streamsense.models.content import MediaType
from streamsense.models.content_dna import ContentDNARecord
from streamsense.models.schemas import ContentDNA, TasteProfile
from streamsense.services.dna.analyzer import analyze_content
from streamsense.services.taste.profile import apply_interaction, build_profile

logger = logging.getLogger(__name__)


def profile_from_record(record) -> TasteProfile:
    profile = TasteProfile.model_validate(record)
    profile.updated_at = ensure_utc(record.updated_at)
    return profile


class TasteProfileBuilder:
    """Reads watch history and DNA records to produce and persist profiles."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def load(self, user_id: str) -> TasteProfile | None:
        """Stored profile, or None if the user has none yet."""
        async with self.session_factory() as db:
            record = await get_taste_profile(db, user_id)
        return profile_from_record(record) if record is not None else None

    async def rebuild(self, user_id: str) -> TasteProfile:
        """Full rebuild from the user's entire watch history."""
        async with self.session_factory() as db:
            watchlist = await get_user_watchlist(db, user_id)

            rows = []
            for item in watchlist:
                ref = watchlist_ref(item)
                if ref is not None and counts_toward_taste(item):
                    genres = item.content.genres if item.content is not None else []
                    rows.append((ref, genres, item.rating))

            records = await self._dna_records(db, [ref for ref, _, _ in rows])

        signals = []
        for (tmdb_id, media_type), genres, rating in rows:
            record = records.get(f"{media_type.value}-{tmdb_id}")
            if record is not None:
                dna = ContentDNA.model_validate(record)
            else:
                dna = analyze_content(tmdb_id, media_type, genres)
            signals.append((dna, rating))

        profile = build_profile(user_id, signals)
        async with self.session_factory() as db:
            record = await save_taste_profile(db, profile)
        profile.updated_at = ensure_utc(record.updated_at)

        logger.info(
            f"Rebuilt taste profile for {user_id}: {profile.watched_count} titles, "
            f"signature={profile.taste_signature!r}"
        )
        return profile

    async def update_after_interaction(
        self,
        profile: TasteProfile,
        tmdb_id: int,
        media_type: MediaType | str,
        rating: int | None = None,
        genre_ids: list[int] | None = None,
        counted_before: bool = False,
        previous_rating: int | None = None,
    ) -> TasteProfile:
        """Fold one title into ``profile`` (or re-weight it if already counted) and persist."""
        media_type = MediaType(media_type)
        async with self.session_factory() as db:
            records = await self._dna_records(db, [(tmdb_id, media_type)])
        record = records.get(f"{media_type.value}-{tmdb_id}")
        if record is not None:
            dna = ContentDNA.model_validate(record)
        else:
            dna = analyze_content(tmdb_id, media_type, genre_ids or [])

        updated = apply_interaction(
            profile, dna, rating, counted_before=counted_before, previous_rating=previous_rating
        )
        async with self.session_factory() as db:
            saved = await save_taste_profile(db, updated)
        updated.updated_at = ensure_utc(saved.updated_at)
        return updated

    @staticmethod
    async def _dna_records(
        db: AsyncSession, refs: list[tuple[int, MediaType]]
    ) -> dict[str, ContentDNARecord]:
        try:
            return await get_content_dna_many(db, refs)
        except Exception as e:
            if not is_missing_table_error(e):
                raise
            logger.debug("content_dna table missing; using genre-only DNA")
            await db.rollback()
            return {}
