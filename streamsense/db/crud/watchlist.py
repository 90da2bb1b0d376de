"""CRUD operations for watchlist rows and the content they reference."""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamsense.models.content import Content, MediaType
from streamsense.models.watchlist import WatchlistItem, WatchStatus
from streamsense.models.schemas import InteractionCreate


def parse_tmdb_id(raw: object) -> int | None:
    """Parse a stored external id, rejecting None, "null" and non-numeric junk."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text.isdigit():
        return None
    value = int(text)
    return value if value > 0 else None


def watchlist_ref(item: WatchlistItem) -> tuple[int, MediaType] | None:
    """(tmdb_id, media_type) for a watchlist row, or None if it has no usable reference."""
    if item.content is not None:
        return item.content.tmdb_id, item.content.type
    tmdb_id = parse_tmdb_id(item.tmdb_id)
    if tmdb_id is None or item.media_type not in ("movie", "tv"):
        return None
    return tmdb_id, MediaType(item.media_type)


def counts_toward_taste(item: WatchlistItem) -> bool:
    """Whether a row is part of the user's taste history."""
    return item.status in (WatchStatus.WATCHED, WatchStatus.WATCHING) or item.rating is not None


async def get_taste_state(
    db: AsyncSession, user_id: str, tmdb_id: int, media_type: MediaType
) -> tuple[bool, int | None]:
    """(already counted toward taste, stored rating) for one title on the watchlist."""
    result = await db.execute(
        select(WatchlistItem)
        .join(Content, WatchlistItem.content_id == Content.id)
        .where(
            WatchlistItem.user_id == user_id,
            Content.tmdb_id == tmdb_id,
            Content.type == media_type,
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        return False, None
    return counts_toward_taste(item), item.rating


async def get_user_watchlist(db: AsyncSession, user_id: str) -> Sequence[WatchlistItem]:
    """All watchlist rows for a user with their content loaded, oldest first."""
    result = await db.execute(
        select(WatchlistItem)
        .where(WatchlistItem.user_id == user_id)
        .order_by(WatchlistItem.created_at, WatchlistItem.id)
    )
    return result.scalars().all()


async def get_watchlist_refs(db: AsyncSession, user_id: str) -> list[tuple[int, MediaType]]:
    """Distinct, valid (tmdb_id, media_type) references on a user's watchlist."""
    refs: list[tuple[int, MediaType]] = []
    seen: set[tuple[int, MediaType]] = set()
    for item in await get_user_watchlist(db, user_id):
        ref = watchlist_ref(item)
        if ref is not None and ref not in seen:
            seen.add(ref)
            refs.append(ref)
    return refs


async def get_or_create_content(
    db: AsyncSession,
    tmdb_id: int,
    media_type: MediaType,
    title: str,
    genre_ids: list[int],
    poster_path: str | None = None,
    original_language: str | None = None,
) -> Content:
    result = await db.execute(
        select(Content).where(Content.tmdb_id == tmdb_id, Content.type == media_type)
    )
    content = result.scalar_one_or_none()
    if content is None:
        content = Content(
            tmdb_id=tmdb_id,
            type=media_type,
            title=title,
            genres=list(genre_ids),
            poster_path=poster_path,
            original_language=original_language,
        )
        db.add(content)
        await db.flush()
    elif genre_ids and not content.genres:
        content.genres = list(genre_ids)
    return content


async def apply_watchlist_interaction(
    db: AsyncSession,
    user_id: str,
    interaction: InteractionCreate,
) -> WatchlistItem | None:
    """Reflect an interaction on the user's watchlist row.

    Returns the affected row, or None when the row was removed (or a removal
    targeted a title that was never on the list).
    """
    content = await get_or_create_content(
        db,
        interaction.tmdb_id,
        interaction.media_type,
        title=interaction.title or f"{interaction.media_type.value}-{interaction.tmdb_id}",
        genre_ids=interaction.genre_ids,
        poster_path=interaction.poster_path,
        original_language=interaction.original_language,
    )
    result = await db.execute(
        select(WatchlistItem).where(
            WatchlistItem.user_id == user_id,
            WatchlistItem.content_id == content.id,
        )
    )
    item = result.scalar_one_or_none()

    if interaction.action == "remove_from_watchlist":
        if item is not None:
            await db.delete(item)
        await db.commit()
        return None

    if item is None:
        item = WatchlistItem(
            user_id=user_id,
            content_id=content.id,
            tmdb_id=str(content.tmdb_id),
            media_type=content.type.value,
            status=WatchStatus.WANT_TO_WATCH,
        )
        item.content = content
        db.add(item)

    if interaction.action == "start_watching":
        item.status = WatchStatus.WATCHING
    elif interaction.action == "complete_watching":
        item.status = WatchStatus.WATCHED
    if interaction.rating is not None:
        item.rating = interaction.rating

    await db.commit()
    return item
