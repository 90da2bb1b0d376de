"""Recommendation scorer: scoped API fetches merged into categorized, ranked results."""

import asyncio
import logging
import math
import random
from collections.abc import Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from streamsense.config import get_settings
from streamsense.constants import (
    BECAUSE_YOU_LIKED_FETCH,
    BECAUSE_YOU_LIKED_GENRES,
    BECAUSE_YOU_LIKED_MAX_ITEMS,
    DEEP_CUT_BONUS,
    DEEP_CUT_COMBINATIONS,
    DEEP_CUT_MAX_PAGE,
    DEFAULT_RECOMMENDATION_LIMIT,
    DISCOVERY_MAX_PAGE,
    DISCOVERY_MIN_INTERACTIONS,
    DISCOVERY_MIN_VOTE_AVERAGE,
    DISCOVERY_MIN_VOTE_COUNT,
    DISCOVERY_SAMPLE_GENRES,
    FOR_YOU_GENRES,
    FOR_YOU_MAX_PAGE,
    FOR_YOU_MIN_VOTE_AVERAGE,
    FOR_YOU_MIN_VOTE_COUNT,
    GENRE_MATCH_WEIGHT,
    POPULARITY_BONUS_FACTOR,
    PREFERRED_MEDIA_BONUS,
    RATING_BONUS_PER_POINT,
    TRENDING_LIMIT,
)
from streamsense.genres import (
    DISCOVERY_GENRE_IDS,
    FILTER_GENRES,
    MOVIE_TO_TV_GENRE,
    TV_TO_MOVIE_GENRE,
    genres_for_media_type,
    matches_filter_genre,
)
from streamsense.models.content import MediaType
from streamsense.models.schemas import GenreGroup, MediaTypeFilter, SmartRecommendations, UnifiedContent
from streamsense.services.metadata.tmdb import TMDBService, tmdb_service
from streamsense.services.recommendations.normalizer import normalize_results
from streamsense.services.recommendations.preferences import (
    UserPreferences,
    get_user_preferences,
)
from streamsense.services.recommendations.session_cache import SessionCache

logger = logging.getLogger(__name__)


def _equivalent_genres(genre_ids: Iterable[int]) -> set[int]:
    """Genre ids plus their cross-media-type equivalents."""
    expanded = set(genre_ids)
    for gid in list(expanded):
        for mapping in (TV_TO_MOVIE_GENRE, MOVIE_TO_TV_GENRE):
            if gid in mapping:
                expanded.add(mapping[gid])
    return expanded


def _meets_floor(item: UnifiedContent, min_votes: int, min_rating: float) -> bool:
    return item.vote_count >= min_votes and item.rating >= min_rating


class RecommendationScorer:
    """Builds ``SmartRecommendations`` for one user.

    Strategy:
    1. Aggregate the user's preferences (top genres, media lean, exclusions)
    2. forYou: OR-query over the top 3 genres plus AND-queries over recurring
       genre pairs ("deep cuts"), from a random page, under a quality floor
    3. becauseYouLiked: one labelled single-genre group per top genre
    4. discovery: random unexplored genres under a stricter quality floor
    5. trending: global feed, also the only output for cold-start users

    Ranking blends normalized relevance with ``rng.random()``; the relevance
    weight is tunable and ``rng`` is injectable so tests can seed it.
    Every returned item is recorded in the session cache.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tmdb: TMDBService | None = None,
        session_cache: SessionCache | None = None,
        rng: random.Random | None = None,
        relevance_weight: float | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.tmdb = tmdb if tmdb is not None else tmdb_service
        self.session_cache = session_cache if session_cache is not None else SessionCache()
        self.rng = rng if rng is not None else random.Random()
        if relevance_weight is None:
            relevance_weight = get_settings().recommendation_relevance_weight
        self.relevance_weight = relevance_weight

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def get_smart_recommendations(
        self,
        user_id: str | None,
        media_type: MediaTypeFilter = "mixed",
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
        include_discovery: bool = True,
        force_refresh: bool = False,
    ) -> SmartRecommendations:
        """Categorized recommendations; never raises on data or network failures."""
        if not user_id:
            return SmartRecommendations()

        if force_refresh:
            self.session_cache.clear()

        prefs = await self._load_preferences(user_id)
        if prefs is None:
            return SmartRecommendations()

        exclusions = prefs.watchlist_content_ids

        if prefs.is_cold_start:
            trending = await self._trending(media_type, limit, exclusions)
            self.session_cache.add_many(trending)
            logger.info(f"Cold start for {user_id}: {len(trending)} trending items")
            return SmartRecommendations(trending=trending)

        for_you = await self._for_you(prefs, media_type, limit, exclusions)
        self.session_cache.add_many(for_you)

        because_you_liked = await self._because_you_liked(prefs, media_type, exclusions)

        discovery: list[UnifiedContent] = []
        if include_discovery and prefs.total_interactions > DISCOVERY_MIN_INTERACTIONS:
            discovery = await self._discovery(prefs, media_type, max(limit // 2, 1), exclusions)
            self.session_cache.add_many(discovery)

        trending = await self._trending(media_type, TRENDING_LIMIT, exclusions)
        self.session_cache.add_many(trending)

        logger.info(
            f"Recommendations for {user_id}: forYou={len(for_you)} "
            f"becauseYouLiked={sum(len(g.items) for g in because_you_liked)} "
            f"discovery={len(discovery)} trending={len(trending)}"
        )
        return SmartRecommendations(
            for_you=for_you,
            because_you_liked=because_you_liked,
            discovery=discovery,
            trending=trending,
        )

    async def get_genre_recommendations(
        self,
        user_id: str | None,
        genre: str,
        media_type: str = "all",
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> list[UnifiedContent]:
        """Recommendations for one browse-taxonomy genre (e.g. "Horror", "Anime").

        Raises:
            ValueError: ``genre`` is not part of the browse taxonomy
        """
        if genre not in FILTER_GENRES:
            raise ValueError(f"Unknown genre: {genre}")

        prefs = await self._load_preferences(user_id) if user_id else None
        if prefs is None:
            prefs = UserPreferences()

        language = "ja" if genre == "Anime" else None
        fetches = []
        for mt in self._media_types(media_type):
            genre_ids = genres_for_media_type(FILTER_GENRES[genre], mt)
            if genre_ids:
                fetches.append(self._genre_fetch(genre, mt, genre_ids, language))

        batches = await asyncio.gather(*fetches)
        candidates = [
            item
            for item in self._eligible(
                (item for batch in batches for item in batch),
                prefs.watchlist_content_ids,
                FOR_YOU_MIN_VOTE_COUNT,
                FOR_YOU_MIN_VOTE_AVERAGE,
            )
            if matches_filter_genre(item, genre)
        ]
        results = self._rank(candidates, prefs)[:limit]
        self.session_cache.add_many(results)
        return results

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def _for_you(
        self,
        prefs: UserPreferences,
        media_type: MediaTypeFilter,
        limit: int,
        exclusions: set[str],
    ) -> list[UnifiedContent]:
        top_ids = [g.id for g in prefs.top_genres[:FOR_YOU_GENRES]]
        combos = [c.genre_ids for c in prefs.genre_combinations[:DEEP_CUT_COMBINATIONS]]

        fetches = []
        for mt in self._media_types(media_type):
            genre_ids = genres_for_media_type(top_ids, mt)
            if genre_ids:
                fetches.append(
                    self._discover(
                        "forYou",
                        mt,
                        genre_ids=genre_ids,
                        min_vote_count=FOR_YOU_MIN_VOTE_COUNT,
                        min_vote_average=FOR_YOU_MIN_VOTE_AVERAGE,
                        page=self.rng.randint(1, FOR_YOU_MAX_PAGE),
                    )
                )
            for combo in combos:
                combo_ids = genres_for_media_type(combo, mt)
                if len(combo_ids) == len(combo):
                    fetches.append(
                        self._discover(
                            "deepCut",
                            mt,
                            genre_ids=combo_ids,
                            match_all_genres=True,
                            min_vote_count=FOR_YOU_MIN_VOTE_COUNT,
                            min_vote_average=FOR_YOU_MIN_VOTE_AVERAGE,
                            page=self.rng.randint(1, DEEP_CUT_MAX_PAGE),
                        )
                    )

        batches = await asyncio.gather(*fetches)
        candidates = self._eligible(
            (item for batch in batches for item in batch),
            exclusions,
            FOR_YOU_MIN_VOTE_COUNT,
            FOR_YOU_MIN_VOTE_AVERAGE,
        )
        return self._rank(candidates, prefs)[:limit]

    async def _because_you_liked(
        self,
        prefs: UserPreferences,
        media_type: MediaTypeFilter,
        exclusions: set[str],
    ) -> list[GenreGroup]:
        if media_type != "mixed":
            target = MediaType(media_type)
        elif prefs.preferred_media_type != "balanced":
            target = MediaType(prefs.preferred_media_type)
        else:
            target = MediaType.MOVIE

        genres = []
        fetches = []
        for genre in prefs.top_genres[:BECAUSE_YOU_LIKED_GENRES]:
            genre_ids = genres_for_media_type([genre.id], target)
            if not genre_ids:
                continue
            genres.append(genre)
            fetches.append(
                self._discover(
                    f"becauseYouLiked:{genre.name}",
                    target,
                    genre_ids=genre_ids[:1],
                    min_vote_count=FOR_YOU_MIN_VOTE_COUNT,
                    min_vote_average=FOR_YOU_MIN_VOTE_AVERAGE,
                    page=self.rng.randint(1, FOR_YOU_MAX_PAGE),
                )
            )
        batches = await asyncio.gather(*fetches)

        groups: list[GenreGroup] = []
        # Sequential so each group's items are excluded from the groups after it
        for genre, batch in zip(genres, batches):
            candidates = self._eligible(
                batch[:BECAUSE_YOU_LIKED_FETCH],
                exclusions,
                FOR_YOU_MIN_VOTE_COUNT,
                FOR_YOU_MIN_VOTE_AVERAGE,
            )
            items = self._rank(candidates, prefs)[:BECAUSE_YOU_LIKED_MAX_ITEMS]
            if items:
                self.session_cache.add_many(items)
                groups.append(GenreGroup(genre=genre.name, genre_id=genre.id, items=items))
        return groups

    async def _discovery(
        self,
        prefs: UserPreferences,
        media_type: MediaTypeFilter,
        limit: int,
        exclusions: set[str],
    ) -> list[UnifiedContent]:
        target = MediaType.TV if media_type == "tv" else MediaType.MOVIE
        explored = _equivalent_genres(g.id for g in prefs.top_genres)
        unexplored = [g for g in DISCOVERY_GENRE_IDS if g not in explored]
        if not unexplored:
            return []

        sampled = self.rng.sample(unexplored, min(DISCOVERY_SAMPLE_GENRES, len(unexplored)))
        genre_ids = genres_for_media_type(sampled, target)
        if not genre_ids:
            return []

        batch = await self._discover(
            "discovery",
            target,
            genre_ids=genre_ids,
            sort_by="vote_average.desc",
            min_vote_count=DISCOVERY_MIN_VOTE_COUNT,
            min_vote_average=DISCOVERY_MIN_VOTE_AVERAGE,
            page=self.rng.randint(1, DISCOVERY_MAX_PAGE),
        )
        candidates = self._eligible(
            batch, exclusions, DISCOVERY_MIN_VOTE_COUNT, DISCOVERY_MIN_VOTE_AVERAGE
        )
        # Shuffle rather than rank by taste: these genres are outside it
        return self._rank(candidates, UserPreferences())[:limit]

    async def _trending(
        self,
        media_type: MediaTypeFilter,
        limit: int,
        exclusions: set[str],
    ) -> list[UnifiedContent]:
        try:
            payload = await self.tmdb.trending("all", "day")
        except Exception as e:
            logger.warning(f"trending fetch failed: {e!r}")
            return []

        items = normalize_results(payload.get("results", []))
        if media_type != "mixed":
            items = [item for item in items if item.type.value == media_type]
        return self._eligible(items, exclusions, 0, 0.0)[:limit]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_preferences(self, user_id: str) -> UserPreferences | None:
        try:
            async with self.session_factory() as db:
                return await get_user_preferences(db, user_id)
        except Exception:
            logger.error(f"Failed to load preferences for {user_id}", exc_info=True)
            return None

    @staticmethod
    def _media_types(media_type: str) -> list[MediaType]:
        if media_type in ("movie", "tv"):
            return [MediaType(media_type)]
        return [MediaType.MOVIE, MediaType.TV]

    async def _discover(
        self, label: str, media_type: MediaType, **params: Any
    ) -> list[UnifiedContent]:
        """One discover call; failures are logged and count as no results."""
        try:
            payload = await self.tmdb.discover(media_type.value, **params)
        except Exception as e:
            logger.warning(f"{label} fetch failed for {media_type.value}: {e!r}")
            return []
        return normalize_results(payload.get("results", []), media_type)

    async def _genre_fetch(
        self,
        genre: str,
        media_type: MediaType,
        genre_ids: list[int],
        language: str | None,
    ) -> list[UnifiedContent]:
        params: dict[str, Any] = {
            "genre_ids": genre_ids,
            "min_vote_count": FOR_YOU_MIN_VOTE_COUNT,
            "min_vote_average": FOR_YOU_MIN_VOTE_AVERAGE,
            "original_language": language,
        }
        items = await self._discover(
            f"genre:{genre}", media_type, page=self.rng.randint(1, FOR_YOU_MAX_PAGE), **params
        )
        if not items:
            # Rare genres may not reach the random page
            items = await self._discover(f"genre:{genre}", media_type, page=1, **params)
        return items

    def _eligible(
        self,
        items: Iterable[UnifiedContent],
        exclusions: set[str],
        min_votes: int,
        min_rating: float,
    ) -> list[UnifiedContent]:
        """Drop excluded, already-shown, below-floor and duplicate items, keeping order."""
        seen: set[str] = set()
        result = []
        for item in items:
            key = item.key
            if key in seen or key in exclusions or self.session_cache.contains(key):
                continue
            if not _meets_floor(item, min_votes, min_rating):
                continue
            seen.add(key)
            result.append(item)
        return result

    def _relevance(self, item: UnifiedContent, prefs: UserPreferences) -> float:
        weights = {g.id: max(g.score, 0.0) for g in prefs.top_genres}
        max_weight = max(weights.values(), default=0.0) or 1.0

        relevance = 0.0
        for gid in _equivalent_genres(item.genre_ids):
            if gid in weights:
                relevance += GENRE_MATCH_WEIGHT * weights[gid] / max_weight
        relevance += min(max(item.rating, 0.0), 10.0) * RATING_BONUS_PER_POINT
        relevance += math.log10(max(item.popularity, 0.0) + 1) * POPULARITY_BONUS_FACTOR

        if prefs.preferred_media_type == item.type.value:
            relevance += PREFERRED_MEDIA_BONUS
        item_genres = set(item.genre_ids)
        if any(set(c.genre_ids) <= item_genres for c in prefs.genre_combinations):
            relevance += DEEP_CUT_BONUS
        return relevance

    def _rank(self, items: list[UnifiedContent], prefs: UserPreferences) -> list[UnifiedContent]:
        """Order by ``w * relevance / max_relevance + (1 - w) * random()``."""
        if not items:
            return []
        relevances = [self._relevance(item, prefs) for item in items]
        top = max(relevances) or 1.0
        w = self.relevance_weight
        scored = [
            (w * (rel / top) + (1 - w) * self.rng.random(), item)
            for rel, item in zip(relevances, items)
        ]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [item for _, item in scored]
