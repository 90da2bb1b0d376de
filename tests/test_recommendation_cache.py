"""Tests for the recommendation cache and its manager."""

import random

import pytest

from streamsense.models.content import MediaType
from streamsense.models.schemas import SmartRecommendations, UnifiedContent
from streamsense.services.recommendations.cache import (
    RecommendationCache,
    RecommendationCacheManager,
    is_presentable,
)
from streamsense.services.recommendations.scorer import RecommendationScorer

TEST_USER_ID = "user-1"


def item(
    tmdb_id: int,
    media_type: MediaType = MediaType.MOVIE,
    genre_ids: list[int] | None = None,
    language: str = "en",
    poster_path: str | None = "/p.jpg",
    title: str = "Some Title",
) -> UnifiedContent:
    return UnifiedContent(
        id=tmdb_id,
        type=media_type,
        title=title,
        poster_path=poster_path,
        genre_ids=genre_ids or [18],
        language=language,
        rating=7.0,
        vote_count=500,
    )


class StubScorer:
    """Scorer replacement with canned output and optional failures."""

    def __init__(self, smart=None, genre_items=None, fail_smart=False, fail_genre=False):
        self.smart = smart or SmartRecommendations()
        self.genre_items = genre_items or {}
        self.fail_smart = fail_smart
        self.fail_genre = fail_genre
        self.smart_calls = 0
        self.genre_calls: list[tuple[str, str]] = []

    async def get_smart_recommendations(self, user_id, **kwargs):
        self.smart_calls += 1
        if self.fail_smart:
            raise RuntimeError("scorer exploded")
        return self.smart

    async def get_genre_recommendations(self, user_id, genre, media_type="all", limit=20):
        self.genre_calls.append((genre, media_type))
        if self.fail_genre:
            raise RuntimeError("genre fetch exploded")
        return list(self.genre_items.get(genre, []))[:limit]


class TestIsPresentable:
    """Tests for is_presentable."""

    def test_needs_poster_and_title(self):
        assert is_presentable(item(1))
        assert not is_presentable(item(1, poster_path=None))
        assert not is_presentable(item(1, title=""))


class TestRecommendationCache:
    """Tests for the in-memory partitions."""

    def test_partitions_reference_pool_items(self):
        cache = RecommendationCache.build(
            [
                item(1, genre_ids=[27, 53]),
                item(2, MediaType.TV, genre_ids=[10765]),
                item(3, genre_ids=[16], language="ja"),
                item(4, MediaType.TV, genre_ids=[16]),
            ]
        )

        pool_ids = {id(i) for i in cache.all}
        for bucket in [*cache.by_genre.values(), *cache.by_media_type.values()]:
            assert {id(i) for i in bucket} <= pool_ids
        assert [i.key for i in cache.by_genre["Horror"]] == ["movie-1"]
        assert [i.key for i in cache.by_genre["Thriller"]] == ["movie-1"]
        assert [i.key for i in cache.by_genre["Sci-Fi"]] == ["tv-2"]
        assert [i.key for i in cache.by_genre["Fantasy"]] == ["tv-2"]
        assert [i.key for i in cache.by_media_type["tv"]] == ["tv-2", "tv-4"]
        assert cache.last_fetched is not None

    def test_anime_and_animation_are_disjoint(self):
        cache = RecommendationCache.build(
            [
                item(1, genre_ids=[16], language="ja"),
                item(2, genre_ids=[16, 35]),
            ]
        )

        assert [i.key for i in cache.by_genre["Anime"]] == ["movie-1"]
        assert [i.key for i in cache.by_genre["Animation"]] == ["movie-2"]

    def test_duplicates_and_unpresentable_items_are_dropped(self):
        cache = RecommendationCache.build(
            [
                item(1),
                item(1),
                item(1, MediaType.TV),
                item(2, poster_path=None),
                item(3, title=""),
            ]
        )

        assert [i.key for i in cache.all] == ["movie-1", "tv-1"]
        assert "movie-1" in cache
        assert "movie-2" not in cache

    def test_merge_returns_only_new_items(self):
        cache = RecommendationCache.build([item(1, genre_ids=[27])])

        added = cache.merge([item(1, genre_ids=[27]), item(2, genre_ids=[27])])

        assert [i.key for i in added] == ["movie-2"]
        assert [i.key for i in cache.by_genre["Horror"]] == ["movie-1", "movie-2"]

    def test_filter_combinations(self):
        cache = RecommendationCache.build(
            [
                item(1, genre_ids=[35]),
                item(2, MediaType.TV, genre_ids=[35]),
                item(3, genre_ids=[18]),
            ]
        )

        assert len(cache.filter()) == 3
        assert [i.key for i in cache.filter("tv")] == ["tv-2"]
        assert [i.key for i in cache.filter("all", "Comedy")] == ["movie-1", "tv-2"]
        assert [i.key for i in cache.filter("movie", "Comedy")] == ["movie-1"]
        assert cache.filter("tv", "Drama") == []

    def test_filter_returns_copies(self):
        cache = RecommendationCache.build([item(1)])

        cache.filter().clear()

        assert len(cache.all) == 1


class TestRecommendationCacheManager:
    """Tests for loading, refreshing and topping up."""

    @pytest.mark.asyncio
    async def test_load_fetches_once(self):
        scorer = StubScorer(smart=SmartRecommendations(for_you=[item(1)]))
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)

        first = await manager.load()
        second = await manager.load()

        assert first is second
        assert scorer.smart_calls == 1
        assert manager.is_loaded
        assert not manager.is_loading

    @pytest.mark.asyncio
    async def test_pool_includes_underrepresented_genres(self):
        scorer = StubScorer(
            smart=SmartRecommendations(for_you=[item(1, genre_ids=[28])]),
            genre_items={"Horror": [item(2, genre_ids=[27])]},
        )
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)

        cache = await manager.load()

        assert [i.key for i in cache.all] == ["movie-1", "movie-2"]
        assert {genre for genre, _ in scorer.genre_calls} == {
            "Horror",
            "Documentary",
            "Thriller",
            "Crime",
            "Romance",
        }

    @pytest.mark.asyncio
    async def test_failed_genre_prefetch_keeps_the_rest(self):
        scorer = StubScorer(smart=SmartRecommendations(trending=[item(1)]), fail_genre=True)
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)

        cache = await manager.load()

        assert [i.key for i in cache.all] == ["movie-1"]
        assert manager.error is None

    @pytest.mark.asyncio
    async def test_failed_load_leaves_empty_cache_and_error(self):
        manager = RecommendationCacheManager(TEST_USER_ID, StubScorer(fail_smart=True))

        cache = await manager.load()

        assert cache.all == []
        assert manager.error == "scorer exploded"
        assert not manager.is_loading

    @pytest.mark.asyncio
    async def test_refresh_replaces_the_pool(self):
        scorer = StubScorer(smart=SmartRecommendations(for_you=[item(1)]))
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)
        await manager.load()

        scorer.smart = SmartRecommendations(for_you=[item(2)])
        cache = await manager.refresh(force=True)

        assert [i.key for i in cache.all] == ["movie-2"]
        assert scorer.smart_calls == 2

    @pytest.mark.asyncio
    async def test_unknown_genre_raises(self):
        manager = RecommendationCacheManager(TEST_USER_ID, StubScorer())

        with pytest.raises(ValueError):
            await manager.get_filtered(genre="Opera")

    @pytest.mark.asyncio
    async def test_sparse_genre_is_topped_up(self):
        scorer = StubScorer(smart=SmartRecommendations(for_you=[item(1, genre_ids=[9648])]))
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)
        await manager.load()

        scorer.genre_items["Mystery"] = [item(i, genre_ids=[9648]) for i in range(1, 13)]
        results = await manager.get_filtered("all", "Mystery")

        assert [i.key for i in results] == [f"movie-{i}" for i in range(1, 13)]
        assert ("Mystery", "all") in scorer.genre_calls
        # Merged into every partition, not just returned
        assert len(manager.cache.by_media_type["movie"]) == 12
        assert len(manager.cache.all) == 12

    @pytest.mark.asyncio
    async def test_dense_genre_is_served_from_cache(self):
        scorer = StubScorer(
            smart=SmartRecommendations(for_you=[item(i, genre_ids=[35]) for i in range(10)])
        )
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)
        await manager.load()
        calls_after_load = len(scorer.genre_calls)

        results = await manager.get_filtered("movie", "Comedy")

        assert len(results) == 10
        assert len(scorer.genre_calls) == calls_after_load

    @pytest.mark.asyncio
    async def test_failed_top_up_returns_cached_results(self):
        scorer = StubScorer(smart=SmartRecommendations(for_you=[item(1, genre_ids=[9648])]))
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)
        await manager.load()

        scorer.fail_genre = True
        results = await manager.get_filtered("all", "Mystery")

        assert [i.key for i in results] == ["movie-1"]

    @pytest.mark.asyncio
    async def test_with_real_scorer_pool_has_no_duplicates(
        self, session_factory, fake_tmdb, make_result, add_watchlist_item
    ):
        await add_watchlist_item(1, MediaType.MOVIE, [28])
        fake_tmdb.discover_handler = lambda media_type, params: [
            make_result(i, media_type, genre_ids=tuple(params["genre_ids"][:1])) for i in range(100, 130)
        ]
        fake_tmdb.trending_results = [make_result(i, with_type=True) for i in range(100, 110)]
        scorer = RecommendationScorer(session_factory, tmdb=fake_tmdb, rng=random.Random(5))
        manager = RecommendationCacheManager(TEST_USER_ID, scorer)

        cache = await manager.load()
        keys = [i.key for i in cache.all]

        assert keys
        assert len(keys) == len(set(keys))
        assert "movie-1" not in keys
