"""Tests for preference aggregation."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from streamsense.models import MediaType, WatchlistItem, WatchStatus
from streamsense.models.base import utcnow
from streamsense.services.recommendations.preferences import get_user_preferences, preferred_media_type

TEST_USER_ID = "user-1"


class TestPreferredMediaType:
    """Tests for the movie/tv lean classification."""

    def test_below_sample_size_is_balanced(self):
        assert preferred_media_type(4, 0) == "balanced"
        assert preferred_media_type(0, 4) == "balanced"

    def test_thresholds(self):
        assert preferred_media_type(4, 1) == "movie"
        assert preferred_media_type(1, 4) == "tv"
        assert preferred_media_type(3, 2) == "balanced"
        # Exactly 70% is not "more than" 70%
        assert preferred_media_type(7, 3) == "balanced"


class TestGetUserPreferences:
    """Tests for get_user_preferences."""

    @pytest.mark.asyncio
    async def test_cold_start(self, db_session: AsyncSession):
        prefs = await get_user_preferences(db_session, TEST_USER_ID)

        assert prefs.is_cold_start
        assert prefs.top_genres == []
        assert prefs.preferred_media_type == "balanced"
        assert prefs.watchlist_content_ids == set()

    @pytest.mark.asyncio
    async def test_five_items_four_movies_prefers_movie(self, db_session: AsyncSession, add_watchlist_item):
        for tmdb_id in range(1, 5):
            await add_watchlist_item(tmdb_id, MediaType.MOVIE, [18])
        await add_watchlist_item(5, MediaType.TV, [18])

        prefs = await get_user_preferences(db_session, TEST_USER_ID)

        assert prefs.total_interactions == 5
        assert prefs.preferred_media_type == "movie"

    @pytest.mark.asyncio
    async def test_four_items_is_balanced(self, db_session: AsyncSession, add_watchlist_item):
        for tmdb_id in range(1, 5):
            await add_watchlist_item(tmdb_id, MediaType.MOVIE, [18])

        prefs = await get_user_preferences(db_session, TEST_USER_ID)

        assert prefs.preferred_media_type == "balanced"

    @pytest.mark.asyncio
    async def test_recent_affinity_is_boosted(self, db_session: AsyncSession, add_affinity):
        now = utcnow()
        await add_affinity(35, "Comedy", 12.0, last_interaction_at=now - timedelta(days=60))
        await add_affinity(27, "Horror", 10.0, last_interaction_at=now - timedelta(days=5))

        prefs = await get_user_preferences(db_session, TEST_USER_ID, now=now)

        assert [g.name for g in prefs.top_genres] == ["Horror", "Comedy"]
        assert prefs.top_genres[0].score == pytest.approx(15.0)
        assert prefs.top_genres[1].score == pytest.approx(12.0)

    @pytest.mark.asyncio
    async def test_high_ratings_boost_genres(
        self, db_session: AsyncSession, add_watchlist_item, add_affinity
    ):
        await add_affinity(18, "Drama", 1.0)
        await add_watchlist_item(1, MediaType.MOVIE, [18, 80], WatchStatus.WATCHED, rating=5)
        await add_watchlist_item(2, MediaType.MOVIE, [80], WatchStatus.WATCHED, rating=4)
        await add_watchlist_item(3, MediaType.MOVIE, [27], WatchStatus.WATCHED, rating=2)

        prefs = await get_user_preferences(db_session, TEST_USER_ID)
        scores = {g.id: g.score for g in prefs.top_genres}

        assert scores[18] == pytest.approx(3.0)
        assert scores[80] == pytest.approx(3.5)
        assert 27 not in scores
        assert prefs.average_rating == pytest.approx(11 / 3)

    @pytest.mark.asyncio
    async def test_top_genres_are_capped_and_sorted(self, db_session: AsyncSession, add_affinity):
        genre_ids = [28, 12, 16, 35, 80, 99, 18, 10751, 14, 36, 27, 10402]
        for i, gid in enumerate(genre_ids):
            await add_affinity(gid, f"Genre {gid}", float(i))

        prefs = await get_user_preferences(db_session, TEST_USER_ID)
        scores = [g.score for g in prefs.top_genres]

        assert len(prefs.top_genres) == 10
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_exclusions_cover_content_and_legacy_rows(
        self, db_session: AsyncSession, add_watchlist_item
    ):
        await add_watchlist_item(550, MediaType.MOVIE, [18])
        await add_watchlist_item(550, MediaType.TV, [18])
        db_session.add_all(
            [
                WatchlistItem(user_id=TEST_USER_ID, tmdb_id="603", media_type="movie"),
                WatchlistItem(user_id=TEST_USER_ID, tmdb_id="null", media_type="movie"),
                WatchlistItem(user_id=TEST_USER_ID, tmdb_id="abc", media_type="tv"),
            ]
        )
        await db_session.commit()

        prefs = await get_user_preferences(db_session, TEST_USER_ID)

        assert prefs.watchlist_content_ids == {"movie-550", "tv-550", "movie-603"}
        assert prefs.total_interactions == 5

    @pytest.mark.asyncio
    async def test_other_users_are_ignored(self, db_session: AsyncSession, add_watchlist_item):
        await add_watchlist_item(1, MediaType.MOVIE, [18], user_id="someone-else")

        prefs = await get_user_preferences(db_session, TEST_USER_ID)

        assert prefs.is_cold_start

    @pytest.mark.asyncio
    async def test_recent_genres(self, db_session: AsyncSession, add_watchlist_item):
        now = utcnow()
        await add_watchlist_item(1, MediaType.MOVIE, [27, 53], created_at=now - timedelta(days=2))
        await add_watchlist_item(2, MediaType.MOVIE, [99], created_at=now - timedelta(days=45))

        prefs = await get_user_preferences(db_session, TEST_USER_ID, now=now)

        assert prefs.recent_genres == [27, 53]

    @pytest.mark.asyncio
    async def test_recurring_genre_pairs_become_combinations(
        self, db_session: AsyncSession, add_watchlist_item
    ):
        await add_watchlist_item(1, MediaType.MOVIE, [878, 28], WatchStatus.WATCHED)
        await add_watchlist_item(2, MediaType.MOVIE, [28, 878, 12], rating=4)
        # Not positive: neither watched nor rated highly
        await add_watchlist_item(3, MediaType.MOVIE, [35, 18])
        await add_watchlist_item(4, MediaType.MOVIE, [35, 18], rating=2)

        prefs = await get_user_preferences(db_session, TEST_USER_ID)

        assert [c.genre_ids for c in prefs.genre_combinations] == [(28, 878)]
        assert prefs.genre_combinations[0].count == 2
