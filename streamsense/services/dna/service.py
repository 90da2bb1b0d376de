"""Content DNA lookup and computation backed by the user-data store."""

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from streamsense.db.crud.content_dna import get_content_dna, get_content_dna_many, save_content_dna
from streamsense.db.errors import is_missing_table_error
from streamsense.models.content import MediaType
from streamsense.models.schemas import ContentDNA
from streamsense.services.dna.analyzer import dna_from_details
from streamsense.services.metadata.tmdb import TMDBService, tmdb_service

logger = logging.getLogger(__name__)


class ContentDNAService:
    """Reads, computes and stores per-title DNA records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tmdb: TMDBService | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.tmdb = tmdb if tmdb is not None else tmdb_service

    async def get_cached(self, tmdb_id: int, media_type: MediaType | str) -> ContentDNA | None:
        """Stored DNA for a title; a missing ``content_dna`` table reads as "none"."""
        try:
            async with self.session_factory() as db:
                record = await get_content_dna(db, tmdb_id, media_type)
        except Exception as e:
            if is_missing_table_error(e):
                logger.debug("content_dna table missing; treating as not found")
                return None
            raise
        return ContentDNA.model_validate(record) if record is not None else None

    async def dna_exists(self, tmdb_id: int, media_type: MediaType | str) -> bool:
        return await self.get_cached(tmdb_id, media_type) is not None

    async def existing_keys(self, refs: Iterable[tuple[int, MediaType]]) -> set[str]:
        """Keys (``"{media_type}-{tmdb_id}"``) of the given titles that already have DNA.

        Unlike the point lookup, a missing table propagates so bulk callers can
        decide to skip work entirely.
        """
        async with self.session_factory() as db:
            records = await get_content_dna_many(db, refs)
        return set(records)

    async def compute_content_dna(
        self, tmdb_id: int, media_type: MediaType | str, force: bool = False
    ) -> ContentDNA | None:
        """Return stored DNA or compute it from title details and store it.

        Returns None when the title does not exist. Transport failures raise
        ``TMDBError`` so callers can retry.
        """
        media_type = MediaType(media_type)
        if not force:
            cached = await self.get_cached(tmdb_id, media_type)
            if cached is not None:
                return cached

        details = await self.tmdb.get_details(tmdb_id, media_type.value)
        if details is None:
            return None

        dna = dna_from_details(details, media_type)
        async with self.session_factory() as db:
            await save_content_dna(db, dna)
        logger.debug(f"Computed DNA for {dna.key}")
        return dna
