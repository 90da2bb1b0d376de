"""Heuristic content DNA: tone, themes, setting, pacing and complexity weights.

All weights are derived deterministically from genres, keywords, runtime,
release year and reception, then scaled so each vector's maximum is 1.
"""

from collections.abc import Iterable
from datetime import date
from typing import Any

from streamsense.constants import DNA_DIMENSIONS
from streamsense.models.content import MediaType
from streamsense.models.schemas import ContentDNA

DARK_GENRES = frozenset({27, 53, 80, 9648})
LIGHT_GENRES = frozenset({35, 10751, 10749, 16})
FAST_GENRES = frozenset({28, 53, 878, 12, 10759})
SLOW_GENRES = frozenset({18, 99, 36})
COMPLEX_GENRES = frozenset({878, 9648, 53, 18})
SIMPLE_GENRES = frozenset({35, 10751, 28})
FUTURISTIC_GENRES = frozenset({878, 10765})
PERIOD_GENRES = frozenset({36, 10752, 10768, 37})

TONE_GENRES: dict[str, frozenset[int]] = {
    "dark": DARK_GENRES,
    "humorous": frozenset({35}),
    "serious": frozenset({18, 36, 10752, 99, 10768}),
    "lighthearted": LIGHT_GENRES | {10762},
    "suspenseful": frozenset({53, 9648, 27, 80}),
    "emotional": frozenset({18, 10749, 10402}),
}

THEME_GENRES: dict[str, frozenset[int]] = {
    "family": frozenset({10751, 10762}),
    "love": frozenset({10749}),
    "technology": frozenset({878}),
    "justice": frozenset({80}),
    "survival": frozenset({27}),
    "power": frozenset({10768}),
}

THEME_KEYWORDS: dict[str, tuple[str, ...]] = {
    "redemption": ("redemption", "second chance", "atonement"),
    "betrayal": ("betrayal", "double cross", "traitor"),
    "sacrifice": ("sacrifice",),
    "identity": ("identity", "self-discovery", "coming of age", "amnesia"),
    "power": ("power", "corruption", "politic", "king", "empire"),
    "survival": ("survival", "post-apocalyptic", "disaster", "stranded"),
    "justice": ("justice", "revenge", "vigilante", "trial", "lawyer"),
    "loyalty": ("loyalty", "friendship", "brotherhood"),
    "family": ("family", "father", "mother", "sibling"),
    "love": ("love", "romance", "relationship"),
    "loss": ("grief", "death", "loss", "mourning"),
    "freedom": ("freedom", "escape", "prison", "rebellion"),
    "tradition": ("tradition", "culture", "religion"),
    "innovation": ("invention", "innovation", "scientist", "startup"),
    "nature": ("nature", "wilderness", "animal", "ocean"),
    "technology": ("technology", "artificial intelligence", "robot", "computer", "hacker", "cyberpunk"),
}

URBAN_KEYWORDS = ("city", "new york", "urban", "london", "los angeles", "police", "gang")
RURAL_KEYWORDS = ("small town", "village", "farm", "countryside", "desert", "ranch")
FUTURE_KEYWORDS = ("future", "dystopia", "space", "time travel")

MODERN_WINDOW_YEARS = 20


def normalize_vector(vector: dict[str, float]) -> dict[str, float]:
    """Scale so the largest weight is 1 (an all-zero vector stays zero)."""
    top = max(vector.values(), default=0.0)
    if top <= 0:
        return {k: 0.0 for k in vector}
    return {k: round(max(v, 0.0) / top, 4) for k, v in vector.items()}


def _keyword_hits(keywords: list[str], needles: Iterable[str]) -> int:
    return sum(1 for kw in keywords for needle in needles if needle in kw)


def _release_year(release_date: str | None) -> int | None:
    if not release_date or len(release_date) < 4 or not release_date[:4].isdigit():
        return None
    return int(release_date[:4])


def _pacing(genres: set[int], runtime: int | None, media_type: MediaType) -> str:
    fast = len(genres & FAST_GENRES)
    slow = len(genres & SLOW_GENRES)
    if media_type is MediaType.MOVIE and runtime:
        if runtime < 95 and fast > 0:
            return "fast"
        if runtime > 150:
            return "slow"
    if fast > slow:
        return "fast"
    if slow > fast:
        return "slow"
    return "medium"


def _complexity(genres: set[int], rating: float, vote_count: int) -> str:
    complex_count = len(genres & COMPLEX_GENRES)
    simple_count = len(genres & SIMPLE_GENRES)
    # Well-rated but not blockbuster-level attention tends to mean demanding
    if rating >= 7.5 and vote_count < 10000 and complex_count > 0:
        return "complex"
    if complex_count > simple_count:
        return "complex"
    if simple_count > complex_count:
        return "simple"
    return "moderate"


def analyze_content(
    tmdb_id: int,
    media_type: MediaType | str,
    genre_ids: Iterable[int],
    keywords: Iterable[str] = (),
    runtime: int | None = None,
    release_date: str | None = None,
    rating: float = 0.0,
    vote_count: int = 0,
    directors: Iterable[str] = (),
    actors: Iterable[str] = (),
    today: date | None = None,
) -> ContentDNA:
    """Derive a title's DNA from whatever metadata is available.

    With only genre ids the result is coarse but usable; keywords, runtime and
    release date refine themes, pacing and setting.
    """
    media_type = MediaType(media_type)
    genre_list = list(dict.fromkeys(genre_ids))
    genres = set(genre_list)
    kw = [k.lower() for k in keywords]
    year = _release_year(release_date)
    current_year = (today or date.today()).year

    tone = {key: float(len(genres & ids)) for key, ids in TONE_GENRES.items()}

    themes = {key: 0.0 for key in DNA_DIMENSIONS["themes"]}
    for key, ids in THEME_GENRES.items():
        themes[key] += len(genres & ids)
    for key, needles in THEME_KEYWORDS.items():
        themes[key] += _keyword_hits(kw, needles)

    setting = {key: 0.0 for key in DNA_DIMENSIONS["setting"]}
    if genres & FUTURISTIC_GENRES or _keyword_hits(kw, FUTURE_KEYWORDS):
        setting["futuristic"] = 1.0
    elif genres & PERIOD_GENRES:
        setting["historical"] = 1.0
    elif year is None or year >= current_year - MODERN_WINDOW_YEARS:
        setting["contemporary"] = 1.0
    else:
        setting["historical"] = 0.6
        setting["contemporary"] = 0.4
    setting["urban"] = min(1.0, 0.5 * _keyword_hits(kw, URBAN_KEYWORDS) + (0.5 if 80 in genres else 0.0))
    setting["rural"] = min(1.0, 0.5 * _keyword_hits(kw, RURAL_KEYWORDS) + (1.0 if 37 in genres else 0.0))

    pacing = {key: 0.0 for key in DNA_DIMENSIONS["pacing"]}
    pacing[_pacing(genres, runtime, media_type)] = 1.0

    complexity = {key: 0.0 for key in DNA_DIMENSIONS["complexity"]}
    complexity[_complexity(genres, rating, vote_count)] = 1.0

    return ContentDNA(
        tmdb_id=tmdb_id,
        media_type=media_type,
        tone=normalize_vector(tone),
        themes=normalize_vector(themes),
        setting=normalize_vector(setting),
        pacing=pacing,
        complexity=complexity,
        genres=genre_list,
        directors=list(directors),
        actors=list(actors),
        keywords=kw,
    )


def dna_from_details(details: dict[str, Any], media_type: MediaType | str, today: date | None = None) -> ContentDNA:
    """DNA from a title-details payload (with ``credits`` and ``keywords`` appended)."""
    media_type = MediaType(media_type)

    genre_ids = details.get("genre_ids") or [g["id"] for g in details.get("genres") or []]

    keyword_block = details.get("keywords") or {}
    raw_keywords = keyword_block.get("keywords") or keyword_block.get("results") or []
    keywords = [k["name"] for k in raw_keywords if k.get("name")]

    credits = details.get("credits") or {}
    directors = [c["name"] for c in credits.get("crew", []) if c.get("job") == "Director"]
    if not directors:
        directors = [c["name"] for c in details.get("created_by") or [] if c.get("name")]
    actors = [c["name"] for c in credits.get("cast", [])[:5] if c.get("name")]

    runtime = details.get("runtime")
    if not runtime and details.get("episode_run_time"):
        runtime = details["episode_run_time"][0]

    return analyze_content(
        tmdb_id=int(details["id"]),
        media_type=media_type,
        genre_ids=genre_ids,
        keywords=keywords,
        runtime=runtime,
        release_date=details.get("release_date") or details.get("first_air_date"),
        rating=float(details.get("vote_average") or 0.0),
        vote_count=int(details.get("vote_count") or 0),
        directors=directors,
        actors=actors,
        today=today,
    )
