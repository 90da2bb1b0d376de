"""CRUD operations for content DNA records."""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamsense.models.base import utcnow
from streamsense.models.content import MediaType
from streamsense.models.content_dna import ContentDNARecord
from streamsense.models.schemas import ContentDNA

_DNA_FIELDS = (
    "tone",
    "themes",
    "setting",
    "pacing",
    "complexity",
    "genres",
    "directors",
    "actors",
    "keywords",
)


async def get_content_dna(
    db: AsyncSession, tmdb_id: int, media_type: MediaType | str
) -> ContentDNARecord | None:
    result = await db.execute(
        select(ContentDNARecord).where(
            ContentDNARecord.tmdb_id == tmdb_id,
            ContentDNARecord.media_type == MediaType(media_type).value,
        )
    )
    return result.scalar_one_or_none()


async def get_content_dna_many(
    db: AsyncSession, refs: Iterable[tuple[int, MediaType]]
) -> dict[str, ContentDNARecord]:
    """DNA records for many titles, keyed by ``"{media_type}-{tmdb_id}"``."""
    wanted = {f"{MediaType(media_type).value}-{tmdb_id}" for tmdb_id, media_type in refs}
    if not wanted:
        return {}
    tmdb_ids = {int(key.split("-", 1)[1]) for key in wanted}
    result = await db.execute(
        select(ContentDNARecord).where(ContentDNARecord.tmdb_id.in_(tmdb_ids))
    )
    return {record.key: record for record in result.scalars().all() if record.key in wanted}


async def save_content_dna(db: AsyncSession, dna: ContentDNA) -> ContentDNARecord:
    """Insert or replace the DNA record for one title."""
    record = await get_content_dna(db, dna.tmdb_id, dna.media_type)
    if record is None:
        record = ContentDNARecord(tmdb_id=dna.tmdb_id, media_type=dna.media_type.value)
        db.add(record)

    for field in _DNA_FIELDS:
        setattr(record, field, getattr(dna, field))
    record.computed_at = utcnow()

    await db.commit()
    return record
