"""Genre taxonomy for the content-metadata API.

Movie and TV genres share most ids but not all: a few TV-only compound
genres map onto a movie equivalent (and back) when a query crosses media types.
The browse taxonomy groups ids under user-facing names; "Anime" and
"Animation" split genre 16 by country of origin.
"""

from collections.abc import Iterable
from typing import Protocol

from streamsense.models.content import MediaType

ANIMATION_GENRE_ID = 16

MOVIE_GENRES: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}

TV_GENRES: dict[int, str] = {
    10759: "Action & Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    10762: "Kids",
    9648: "Mystery",
    10763: "News",
    10764: "Reality",
    10765: "Sci-Fi & Fantasy",
    10766: "Soap",
    10767: "Talk",
    10768: "War & Politics",
    37: "Western",
}

TV_TO_MOVIE_GENRE: dict[int, int] = {10759: 28, 10765: 878, 10768: 10752}
MOVIE_TO_TV_GENRE: dict[int, int] = {28: 10759, 12: 10759, 878: 10765, 14: 10765, 10752: 10768}

# Browse taxonomy: name -> ids matched against an item's genre list
FILTER_GENRES: dict[str, tuple[int, ...]] = {
    "Drama": (18,),
    "Adventure": (12, 10759),
    "Action": (28, 10759),
    "Sci-Fi": (878, 10765),
    "Animation": (16,),
    "Anime": (16,),
    "Comedy": (35,),
    "Thriller": (53,),
    "Horror": (27,),
    "Romance": (10749,),
    "Documentary": (99,),
    "Crime": (80,),
    "Mystery": (9648,),
    "Fantasy": (14, 10765),
    "Family": (10751,),
}

# Candidates for "discovery" (the catch-all TV Movie genre is left out)
DISCOVERY_GENRE_IDS: tuple[int, ...] = tuple(g for g in MOVIE_GENRES if g != 10770)


class GenreTagged(Protocol):
    genre_ids: list[int]
    language: str | None
    origin_country: list[str]


def genre_name(genre_id: int) -> str:
    """Human-readable name for a movie or TV genre id."""
    return MOVIE_GENRES.get(genre_id) or TV_GENRES.get(genre_id) or f"Genre {genre_id}"


def genres_for_media_type(genre_ids: Iterable[int], media_type: MediaType | str) -> list[int]:
    """Translate genre ids so they are valid for ``media_type``.

    Ids already valid for the target type pass through; cross-type compound
    genres are mapped; anything else is dropped. Order is kept, duplicates removed.
    """
    target = MediaType(media_type)
    valid, mapping = (MOVIE_GENRES, TV_TO_MOVIE_GENRE) if target is MediaType.MOVIE else (
        TV_GENRES,
        MOVIE_TO_TV_GENRE,
    )
    result: list[int] = []
    for gid in genre_ids:
        mapped = gid if gid in valid else mapping.get(gid)
        if mapped is not None and mapped not in result:
            result.append(mapped)
    return result


def is_japanese(item: GenreTagged) -> bool:
    return item.language == "ja" or "JP" in (item.origin_country or [])


def is_anime(item: GenreTagged) -> bool:
    return ANIMATION_GENRE_ID in item.genre_ids and is_japanese(item)


def is_western_animation(item: GenreTagged) -> bool:
    return ANIMATION_GENRE_ID in item.genre_ids and not is_japanese(item)


def matches_filter_genre(item: GenreTagged, name: str) -> bool:
    """Whether ``item`` belongs to the browse-taxonomy genre ``name``."""
    if name == "Anime":
        return is_anime(item)
    if name == "Animation":
        return is_western_animation(item)
    ids = FILTER_GENRES.get(name)
    if ids is None:
        return False
    return any(gid in ids for gid in item.genre_ids)
