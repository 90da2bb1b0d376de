"""Pytest configuration and fixtures."""

import os

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TMDB_API_KEY"] = "test-key"

import random
from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from streamsense.db.database import get_db
from streamsense.main import app
from streamsense.models import Base, Content, MediaType, UserGenreAffinity, WatchlistItem, WatchStatus
from streamsense.services.dna.queue import DNAComputationQueue
from streamsense.services.dna.service import ContentDNAService
from streamsense.services.metadata.tmdb import TMDBError
from streamsense.services.sessions import UserSessionRegistry

TEST_USER_ID = "user-1"


class FakeTMDB:
    """Scripted stand-in for ``TMDBService`` that records every call."""

    def __init__(self) -> None:
        self.discover_results: dict[str, list[dict[str, Any]]] = {"movie": [], "tv": []}
        self.discover_handler: Callable[[str, dict[str, Any]], list[dict[str, Any]]] | None = None
        self.trending_results: list[dict[str, Any]] = []
        self.details: dict[tuple[int, str], dict[str, Any]] = {}
        self.fail_discover = False
        self.fail_trending = False
        self.fail_details = False

        self.discover_calls: list[dict[str, Any]] = []
        self.trending_calls = 0
        self.details_calls: list[tuple[int, str]] = []

    async def discover(self, media_type: str, **params: Any) -> dict[str, Any]:
        self.discover_calls.append({"media_type": media_type, **params})
        if self.fail_discover:
            raise TMDBError("discover unavailable")
        if self.discover_handler is not None:
            results = self.discover_handler(media_type, params)
        else:
            results = self.discover_results.get(media_type, [])
        return {"page": params.get("page", 1), "results": [dict(r) for r in results]}

    async def trending(self, media_type: str = "all", time_window: str = "day") -> dict[str, Any]:
        self.trending_calls += 1
        if self.fail_trending:
            raise TMDBError("trending unavailable")
        return {"page": 1, "results": [dict(r) for r in self.trending_results]}

    async def get_details(self, tmdb_id: int, media_type: str) -> dict[str, Any] | None:
        self.details_calls.append((tmdb_id, media_type))
        if self.fail_details:
            raise TMDBError("details unavailable")
        return self.details.get((tmdb_id, media_type))


def raw_result(
    tmdb_id: int,
    media_type: str = "movie",
    genre_ids: tuple[int, ...] = (28,),
    vote_average: float = 7.5,
    vote_count: int = 1000,
    popularity: float = 50.0,
    poster_path: str | None = "/poster.jpg",
    original_language: str = "en",
    origin_country: tuple[str, ...] = (),
    with_type: bool = False,
) -> dict[str, Any]:
    """A raw discover/trending result in the content API's shape."""
    title_field = "title" if media_type == "movie" else "name"
    date_field = "release_date" if media_type == "movie" else "first_air_date"
    raw = {
        "id": tmdb_id,
        title_field: f"Title {media_type} {tmdb_id}",
        date_field: "2020-01-01",
        "genre_ids": list(genre_ids),
        "vote_average": vote_average,
        "vote_count": vote_count,
        "popularity": popularity,
        "poster_path": poster_path,
        "original_language": original_language,
        "overview": "",
    }
    if origin_country:
        raw["origin_country"] = list(origin_country)
    if with_type:
        raw["media_type"] = media_type
    return raw


@pytest.fixture
def make_result() -> Callable[..., dict[str, Any]]:
    return raw_result


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Engine over a fresh SQLite file with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_watchlist_item(db_session: AsyncSession):
    """Factory that stores a content row plus a watchlist row pointing at it."""

    async def _add(
        tmdb_id: int,
        media_type: MediaType = MediaType.MOVIE,
        genres: list[int] | None = None,
        status: WatchStatus = WatchStatus.WANT_TO_WATCH,
        rating: int | None = None,
        user_id: str = TEST_USER_ID,
        created_at: datetime | None = None,
    ) -> WatchlistItem:
        content = Content(
            tmdb_id=tmdb_id,
            type=media_type,
            title=f"Title {tmdb_id}",
            genres=list(genres or []),
            origin_country=[],
        )
        db_session.add(content)
        await db_session.flush()

        item = WatchlistItem(
            user_id=user_id,
            content_id=content.id,
            tmdb_id=str(tmdb_id),
            media_type=media_type.value,
            status=status,
            rating=rating,
        )
        item.content = content
        if created_at is not None:
            item.created_at = created_at
        db_session.add(item)
        await db_session.commit()
        return item

    return _add


@pytest.fixture
def add_affinity(db_session: AsyncSession):
    """Factory that stores one genre affinity row."""

    async def _add(
        genre_id: int,
        genre_name: str,
        score: float,
        interaction_count: int = 1,
        last_interaction_at: datetime | None = None,
        user_id: str = TEST_USER_ID,
    ) -> UserGenreAffinity:
        row = UserGenreAffinity(
            user_id=user_id,
            genre_id=genre_id,
            genre_name=genre_name,
            affinity_score=score,
            interaction_count=interaction_count,
            last_interaction_at=last_interaction_at,
        )
        db_session.add(row)
        await db_session.commit()
        return row

    return _add


@pytest.fixture
def fake_tmdb() -> FakeTMDB:
    return FakeTMDB()


@pytest_asyncio.fixture
async def registry(
    session_factory: async_sessionmaker[AsyncSession], fake_tmdb: FakeTMDB
) -> AsyncGenerator[UserSessionRegistry, None]:
    """Session registry wired to the test database and fake content API."""
    dna_queue = DNAComputationQueue(
        ContentDNAService(session_factory, fake_tmdb),
        batch_delay=0,
        retry_delay=0,
    )
    registry = UserSessionRegistry(
        session_factory,
        tmdb=fake_tmdb,
        rng_factory=lambda: random.Random(42),
        dna_queue=dna_queue,
    )

    yield registry

    await dna_queue.wait_until_idle()
    await registry.close()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    registry: UserSessionRegistry,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an unauthenticated test client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.registry = registry

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient) -> AsyncClient:
    """Test client that sends the user-context header."""
    client.headers["X-User-Id"] = TEST_USER_ID
    return client
