"""Preference aggregation: turn a user's stored signals into a ranking profile."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import combinations
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from streamsense.constants import (
    GENRE_COMBINATION_MIN_COUNT,
    GENRE_COMBINATIONS_LIMIT,
    MEDIA_PREFERENCE_MIN_ITEMS,
    MEDIA_PREFERENCE_MOVIE_RATIO,
    MEDIA_PREFERENCE_TV_RATIO,
    POSITIVE_RATING_MIN,
    RATING_BOOST,
    RECENT_AFFINITY_MULTIPLIER,
    RECENT_WINDOW_DAYS,
    TOP_GENRES_LIMIT,
)
from streamsense.db.crud.affinity import get_user_affinities
from streamsense.db.crud.watchlist import get_user_watchlist, watchlist_ref
from streamsense.genres import genre_name
from streamsense.models.base import ensure_utc, utcnow
from streamsense.models.content import MediaType
from streamsense.models.watchlist import WatchStatus

logger = logging.getLogger(__name__)

PreferredMediaType = Literal["movie", "tv", "balanced"]


@dataclass
class GenreScore:
    id: int
    name: str
    score: float
    weight: int


@dataclass
class GenreCombination:
    genre_ids: tuple[int, int]
    count: int


@dataclass
class UserPreferences:
    """Everything the scorer needs to know about one user."""

    top_genres: list[GenreScore] = field(default_factory=list)
    preferred_media_type: PreferredMediaType = "balanced"
    average_rating: float = 0.0
    total_interactions: int = 0
    watchlist_content_ids: set[str] = field(default_factory=set)
    recent_genres: list[int] = field(default_factory=list)
    genre_combinations: list[GenreCombination] = field(default_factory=list)

    @property
    def is_cold_start(self) -> bool:
        return self.total_interactions == 0


def preferred_media_type(movie_count: int, tv_count: int) -> PreferredMediaType:
    """Lean toward a media type only once enough typed items are known."""
    total = movie_count + tv_count
    if total < MEDIA_PREFERENCE_MIN_ITEMS:
        return "balanced"
    movie_ratio = movie_count / total
    if movie_ratio > MEDIA_PREFERENCE_MOVIE_RATIO:
        return "movie"
    if movie_ratio < MEDIA_PREFERENCE_TV_RATIO:
        return "tv"
    return "balanced"


async def get_user_preferences(
    db: AsyncSession,
    user_id: str,
    now: datetime | None = None,
) -> UserPreferences:
    """Aggregate genre affinity and watchlist history into ``UserPreferences``.

    Storage errors propagate; the scorer decides how to degrade.
    """
    now = now or utcnow()
    recent_cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)

    affinities = await get_user_affinities(db, user_id)
    watchlist = await get_user_watchlist(db, user_id)

    genre_scores: dict[int, GenreScore] = {}
    for row in affinities:
        score = row.affinity_score
        last = ensure_utc(row.last_interaction_at)
        if last is not None and last > recent_cutoff:
            score *= RECENT_AFFINITY_MULTIPLIER
        genre_scores[row.genre_id] = GenreScore(
            id=row.genre_id,
            name=row.genre_name,
            score=score,
            weight=row.interaction_count,
        )

    movie_count = tv_count = 0
    ratings: list[int] = []
    recent_genres: list[int] = []
    exclusions: set[str] = set()
    combo_counts: Counter[tuple[int, int]] = Counter()

    for item in watchlist:
        ref = watchlist_ref(item)
        if ref is not None:
            exclusions.add(f"{ref[1].value}-{ref[0]}")

        content = item.content
        if content is None:
            continue
        if content.type is MediaType.MOVIE:
            movie_count += 1
        else:
            tv_count += 1

        genres = list(dict.fromkeys(content.genres or []))
        if item.rating is not None:
            ratings.append(item.rating)
            boost = RATING_BOOST.get(item.rating)
            if boost is not None:
                for gid in genres:
                    existing = genre_scores.get(gid)
                    if existing is None:
                        genre_scores[gid] = GenreScore(gid, genre_name(gid), boost, 1)
                    else:
                        existing.score += boost
                        existing.weight += 1

        created = ensure_utc(item.created_at)
        if created is not None and created > recent_cutoff:
            recent_genres.extend(g for g in genres if g not in recent_genres)

        positive = (item.rating or 0) >= POSITIVE_RATING_MIN or item.status is WatchStatus.WATCHED
        if positive and len(genres) >= 2:
            combo_counts.update(combinations(sorted(genres), 2))

    # sorted() is stable: ties keep affinity-then-watchlist insertion order
    top_genres = sorted(genre_scores.values(), key=lambda g: g.score, reverse=True)[:TOP_GENRES_LIMIT]

    genre_combinations = [
        GenreCombination(genre_ids=pair, count=count)
        for pair, count in combo_counts.most_common()
        if count >= GENRE_COMBINATION_MIN_COUNT
    ][:GENRE_COMBINATIONS_LIMIT]

    prefs = UserPreferences(
        top_genres=top_genres,
        preferred_media_type=preferred_media_type(movie_count, tv_count),
        average_rating=sum(ratings) / len(ratings) if ratings else 0.0,
        total_interactions=len(watchlist),
        watchlist_content_ids=exclusions,
        recent_genres=recent_genres,
        genre_combinations=genre_combinations,
    )
    logger.debug(
        f"Preferences for {user_id}: top={[g.name for g in top_genres[:5]]} "
        f"media={prefs.preferred_media_type} interactions={prefs.total_interactions}"
    )
    return prefs
