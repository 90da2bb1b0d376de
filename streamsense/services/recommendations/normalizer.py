"""Normalize raw API results into ``UnifiedContent``."""

from collections.abc import Iterable
from typing import Any

from streamsense.models.content import MediaType
from streamsense.models.schemas import UnifiedContent

_MEDIA_TYPES = {m.value for m in MediaType}


def normalize_content(
    raw: dict[str, Any], default_type: MediaType | str | None = None
) -> UnifiedContent | None:
    """Map a movie or TV result onto the unified shape.

    Movie and TV payloads name the same things differently (title/name,
    release_date/first_air_date). Results that are neither movie nor TV
    (e.g. people in a mixed trending list) and results without an id yield None.
    """
    media_type = raw.get("media_type") or (
        default_type.value if isinstance(default_type, MediaType) else default_type
    )
    if media_type not in _MEDIA_TYPES or raw.get("id") is None:
        return None

    genre_ids = raw.get("genre_ids")
    if genre_ids is None:
        genre_ids = [g["id"] for g in raw.get("genres") or [] if "id" in g]

    return UnifiedContent(
        id=int(raw["id"]),
        type=MediaType(media_type),
        title=raw.get("title") or raw.get("name") or "",
        original_title=raw.get("original_title") or raw.get("original_name"),
        overview=raw.get("overview"),
        poster_path=raw.get("poster_path"),
        backdrop_path=raw.get("backdrop_path"),
        release_date=raw.get("release_date") or raw.get("first_air_date") or None,
        rating=float(raw.get("vote_average") or 0.0),
        vote_count=int(raw.get("vote_count") or 0),
        popularity=float(raw.get("popularity") or 0.0),
        language=raw.get("original_language"),
        genre_ids=list(genre_ids),
        origin_country=list(raw.get("origin_country") or []),
    )


def normalize_results(
    results: Iterable[dict[str, Any]], default_type: MediaType | str | None = None
) -> list[UnifiedContent]:
    items = []
    for raw in results:
        item = normalize_content(raw, default_type)
        if item is not None:
            items.append(item)
    return items
