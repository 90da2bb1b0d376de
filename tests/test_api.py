"""Tests for the HTTP API."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from streamsense.models import MediaType, UserGenreAffinity, WatchlistItem, WatchStatus

TEST_USER_ID = "user-1"

HORROR_DETAILS = {
    "id": 694,
    "title": "The Shining",
    "genres": [{"id": 27, "name": "Horror"}],
    "runtime": 144,
    "release_date": "1980-05-23",
    "vote_average": 8.2,
    "vote_count": 17000,
    "credits": {"crew": [{"name": "Stanley Kubrick", "job": "Director"}], "cast": []},
    "keywords": {"keywords": [{"name": "isolation"}]},
}


class TestUserContext:
    """Tests for the user-context requirement."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("get", "/api/recommendations"),
            ("get", "/api/recommendations/browse"),
            ("post", "/api/recommendations/refresh"),
            ("get", "/api/taste-profile"),
            ("post", "/api/taste-profile/refresh"),
            ("get", "/api/dna/status"),
            ("post", "/api/dna/scan"),
        ],
    )
    async def test_requires_user_header(self, client: AsyncClient, method: str, path: str):
        response = await client.request(method, path)

        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    @pytest.mark.asyncio
    async def test_blank_header_is_rejected(self, client: AsyncClient):
        response = await client.get("/api/taste-profile", headers={"X-User-Id": "  "})
        assert response.status_code == 401


class TestRecommendationEndpoints:
    """Tests for /api/recommendations."""

    @pytest.mark.asyncio
    async def test_cold_start_returns_trending(self, authenticated_client: AsyncClient, fake_tmdb, make_result):
        fake_tmdb.trending_results = [make_result(i, with_type=True) for i in range(1, 6)]

        response = await authenticated_client.get("/api/recommendations", params={"limit": 3})
        data = response.json()

        assert response.status_code == 200
        assert data["for_you"] == []
        assert len(data["trending"]) == 3
        assert data["trending"][0]["type"] == "movie"

    @pytest.mark.asyncio
    async def test_personalized(
        self, authenticated_client: AsyncClient, fake_tmdb, make_result, add_watchlist_item, add_affinity
    ):
        await add_affinity(28, "Action", 5.0)
        await add_watchlist_item(1, MediaType.MOVIE, [28])
        fake_tmdb.discover_results["movie"] = [make_result(i) for i in range(1, 6)]

        response = await authenticated_client.get("/api/recommendations", params={"media_type": "movie"})
        keys = {f"{item['type']}-{item['id']}" for item in response.json()["for_you"]}

        assert response.status_code == 200
        assert keys == {"movie-2", "movie-3", "movie-4", "movie-5"}

    @pytest.mark.asyncio
    async def test_invalid_parameters(self, authenticated_client: AsyncClient):
        assert (await authenticated_client.get("/api/recommendations", params={"limit": 0})).status_code == 422
        assert (
            await authenticated_client.get("/api/recommendations", params={"media_type": "book"})
        ).status_code == 422

    @pytest.mark.asyncio
    async def test_browse(self, authenticated_client: AsyncClient, fake_tmdb, make_result):
        fake_tmdb.trending_results = [
            make_result(1, genre_ids=(27,), with_type=True),
            make_result(2, "tv", genre_ids=(35,), with_type=True),
            make_result(3, genre_ids=(27,), poster_path=None, with_type=True),
        ]

        response = await authenticated_client.get("/api/recommendations/browse")
        data = response.json()

        assert response.status_code == 200
        assert data["genre"] == "All"
        assert data["count"] == 2
        assert {item["id"] for item in data["items"]} == {1, 2}
        assert data["last_fetched"] is not None

        response = await authenticated_client.get(
            "/api/recommendations/browse", params={"media_type": "tv", "genre": "Comedy"}
        )
        assert [item["id"] for item in response.json()["items"]] == [2]

    @pytest.mark.asyncio
    async def test_large_responses_are_compressed(self, authenticated_client: AsyncClient, fake_tmdb, make_result):
        fake_tmdb.trending_results = [make_result(i, with_type=True) for i in range(1, 6)]

        response = await authenticated_client.get(
            "/api/recommendations/browse", headers={"Accept-Encoding": "gzip"}
        )

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "gzip"
        assert response.json()["count"] == 5

    @pytest.mark.asyncio
    async def test_browse_unknown_genre(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/recommendations/browse", params={"genre": "Opera"})

        assert response.status_code == 422
        assert "Opera" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_refresh(self, authenticated_client: AsyncClient, fake_tmdb, make_result):
        fake_tmdb.trending_results = [make_result(i, with_type=True) for i in range(1, 4)]

        await authenticated_client.get("/api/recommendations/browse")
        response = await authenticated_client.post("/api/recommendations/refresh")

        assert response.status_code == 200
        # Shown items are forgotten, so the same trending titles come back
        assert response.json() == {"status": "success", "count": 3, "error": None}
        assert fake_tmdb.trending_calls == 2


class TestTasteProfileEndpoints:
    """Tests for /api/taste-profile."""

    @pytest.mark.asyncio
    async def test_first_load_builds_profile(self, authenticated_client: AsyncClient, add_watchlist_item):
        await add_watchlist_item(1, MediaType.MOVIE, [27, 53], WatchStatus.WATCHED, rating=5)

        response = await authenticated_client.get("/api/taste-profile")
        data = response.json()

        assert response.status_code == 200
        assert data["state"] == "fresh"
        assert data["is_stale"] is False
        assert data["profile"]["watched_count"] == 1
        assert data["profile"]["taste_signature"] == "Dark Horror Devotee"
        assert data["last_updated"] is not None

    @pytest.mark.asyncio
    async def test_refresh(self, authenticated_client: AsyncClient, registry):
        response = await authenticated_client.post("/api/taste-profile/refresh")

        assert response.status_code == 200
        assert response.json()["profile"]["taste_signature"] == "Eclectic Viewer"
        assert registry.get(TEST_USER_ID).taste.rebuild_count == 1


class TestInteractionEndpoint:
    """Tests for /api/interactions."""

    @pytest.mark.asyncio
    async def test_complete_watching_feeds_every_signal(
        self, authenticated_client: AsyncClient, fake_tmdb, registry, session_factory
    ):
        fake_tmdb.details[(694, "movie")] = HORROR_DETAILS

        response = await authenticated_client.post(
            "/api/interactions",
            json={"tmdb_id": 694, "media_type": "movie", "action": "complete_watching", "genre_ids": [27]},
        )
        data = response.json()
        await registry.dna_queue.wait_until_idle()

        assert response.status_code == 200
        assert data["status"] == "success"
        assert data["watchlist_status"] == "watched"
        assert data["affinity_action"] == "complete_watching"
        assert data["dna_queued"] is True
        assert "Horror" in data["taste_signature"]
        assert await registry.dna_service.dna_exists(694, MediaType.MOVIE)

        async with session_factory() as db:
            affinity = (await db.execute(select(UserGenreAffinity))).scalar_one()
        assert affinity.genre_id == 27
        assert affinity.affinity_score == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_rating_a_watched_title_does_not_count_it_twice(
        self, authenticated_client: AsyncClient, fake_tmdb, registry
    ):
        fake_tmdb.details[(694, "movie")] = HORROR_DETAILS
        fake_tmdb.details[(1396, "tv")] = {"id": 1396, "genres": [{"id": 18}]}
        payload = {"tmdb_id": 694, "media_type": "movie", "genre_ids": [27]}

        await authenticated_client.post("/api/interactions", json={**payload, "action": "complete_watching"})
        await authenticated_client.post(
            "/api/interactions",
            json={"tmdb_id": 1396, "media_type": "tv", "action": "complete_watching", "genre_ids": [18]},
        )
        await authenticated_client.post("/api/interactions", json={**payload, "action": "rate", "rating": 5})
        await authenticated_client.post("/api/interactions", json={**payload, "action": "rate", "rating": 5})
        await registry.dna_queue.wait_until_idle()

        taste = registry.get(TEST_USER_ID).taste
        incremental = taste.profile
        rebuilt = await taste.refresh_profile()

        assert incremental.watched_count == rebuilt.watched_count == 2
        assert incremental.confidence == rebuilt.confidence
        assert incremental.avg_rating == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_neutral_rating_skips_affinity(self, authenticated_client: AsyncClient, fake_tmdb, session_factory):
        fake_tmdb.details[(694, "movie")] = HORROR_DETAILS

        response = await authenticated_client.post(
            "/api/interactions",
            json={"tmdb_id": 694, "media_type": "movie", "action": "rate", "rating": 3, "genre_ids": [27]},
        )

        assert response.status_code == 200
        assert response.json()["affinity_action"] is None
        async with session_factory() as db:
            assert (await db.execute(select(UserGenreAffinity))).first() is None

    @pytest.mark.asyncio
    async def test_add_then_remove(self, authenticated_client: AsyncClient, fake_tmdb, registry, session_factory):
        fake_tmdb.details[(694, "movie")] = HORROR_DETAILS
        payload = {"tmdb_id": 694, "media_type": "movie", "genre_ids": [27]}

        added = await authenticated_client.post("/api/interactions", json={**payload, "action": "add_to_watchlist"})
        removed = await authenticated_client.post(
            "/api/interactions", json={**payload, "action": "remove_from_watchlist"}
        )
        await registry.dna_queue.wait_until_idle()

        assert added.json()["watchlist_status"] == "want_to_watch"
        assert added.json()["taste_signature"] is None
        assert removed.json()["watchlist_status"] is None
        assert removed.json()["dna_queued"] is False
        async with session_factory() as db:
            assert (await db.execute(select(WatchlistItem))).first() is None
            affinity = (await db.execute(select(UserGenreAffinity))).scalar_one()
        assert affinity.affinity_score == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_invalid_payloads(self, authenticated_client: AsyncClient):
        base = {"tmdb_id": 694, "media_type": "movie"}

        bad_rating = await authenticated_client.post(
            "/api/interactions", json={**base, "action": "rate", "rating": 6}
        )
        bad_action = await authenticated_client.post("/api/interactions", json={**base, "action": "bookmark"})
        bad_type = await authenticated_client.post(
            "/api/interactions", json={"tmdb_id": 694, "media_type": "book", "action": "rate"}
        )

        assert bad_rating.status_code == 422
        assert bad_action.status_code == 422
        assert bad_type.status_code == 422


class TestDNAEndpoints:
    """Tests for /api/dna."""

    @pytest.mark.asyncio
    async def test_status(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/dna/status")

        assert response.status_code == 200
        assert response.json() == {"queue_size": 0, "processing": 0, "retrying": 0, "is_running": False}

    @pytest.mark.asyncio
    async def test_scan(self, authenticated_client: AsyncClient, fake_tmdb, registry, add_watchlist_item):
        fake_tmdb.details[(694, "movie")] = HORROR_DETAILS
        fake_tmdb.details[(1396, "tv")] = {"id": 1396, "genres": [{"id": 18}]}
        await add_watchlist_item(694, MediaType.MOVIE, [27])
        await add_watchlist_item(1396, MediaType.TV, [18])

        response = await authenticated_client.post("/api/dna/scan")
        await registry.dna_queue.wait_until_idle()

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert response.json()["queued"] == 2
        assert sorted(fake_tmdb.details_calls) == [(694, "movie"), (1396, "tv")]

        rescan = await authenticated_client.post("/api/dna/scan")
        assert rescan.json()["queued"] == 0

    @pytest.mark.asyncio
    async def test_scan_stream_with_nothing_to_do(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/dna/scan/stream")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert "event: scan" in response.text
        assert '"queued": 0' in response.text
        assert "event: complete" in response.text
