"""TMDB API integration: discover, trending and title details."""

import logging
from typing import Any

import httpx

from streamsense.config import get_settings
from streamsense.models.content import MediaType
from streamsense.utils.cache import CACHE_TTL_MEDIUM, CACHE_TTL_SHORT, cached
from streamsense.utils.http_client import get_tmdb_client
from streamsense.utils.retry import retry_async

logger = logging.getLogger(__name__)


class TMDBError(Exception):
    """The content-metadata API could not be reached or refused the request."""


class TMDBService:
    """Thin async client over the TMDB v3 endpoints the recommender needs.

    Responses are returned as the raw JSON payload; normalization happens in
    the recommendation layer.
    """

    def __init__(self, api_key: str | None = None, language: str = "en-US") -> None:
        self.api_key = api_key if api_key is not None else get_settings().tmdb_api_key
        self.language = language
        # v4 read-access tokens are JWTs and go in a header; v3 keys go in the query
        self.use_api_key_param = not (self.api_key or "").startswith("eyJ")
        self.headers = {} if self.use_api_key_param else {"Authorization": f"Bearer {self.api_key}"}

    def _params(self, **params: Any) -> dict[str, str]:
        query = {k: str(v) for k, v in params.items() if v is not None}
        query.setdefault("language", self.language)
        if self.use_api_key_param:
            query["api_key"] = self.api_key
        return query

    async def _get(self, path: str, params: dict[str, str]) -> httpx.Response:
        if not self.api_key:
            raise TMDBError("TMDB API key is not configured")

        client = get_tmdb_client()
        response = await retry_async(
            client.get,
            path,
            params=params,
            headers=self.headers,
            operation_name=f"TMDB {path}",
        )
        if response is None:
            raise TMDBError(f"TMDB {path}: request failed after retries")
        return response

    async def _get_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        response = await self._get(path, params)
        if response.status_code != 200:
            raise TMDBError(f"TMDB {path}: HTTP {response.status_code}")
        return response.json()

    @cached("tmdb:discover", ttl=CACHE_TTL_SHORT)
    async def discover(
        self,
        media_type: str,
        genre_ids: list[int] | None = None,
        match_all_genres: bool = False,
        sort_by: str = "popularity.desc",
        min_vote_count: int | None = None,
        min_vote_average: float | None = None,
        page: int = 1,
        original_language: str | None = None,
    ) -> dict[str, Any]:
        """Discover movies or TV shows with filters.

        Args:
            media_type: "movie" or "tv"
            genre_ids: Genre filter
            match_all_genres: AND the genres together instead of OR
            sort_by: Sort order (popularity.desc, vote_average.desc, etc.)
            min_vote_count: ``vote_count.gte``
            min_vote_average: ``vote_average.gte``
            page: Page number (1-based)
            original_language: Restrict to an original language (ISO 639-1)

        Returns:
            Raw payload with a ``results`` list
        """
        separator = "," if match_all_genres else "|"
        params = self._params(
            sort_by=sort_by,
            include_adult="false",
            page=page,
            with_genres=separator.join(str(g) for g in genre_ids) if genre_ids else None,
            **{
                "vote_count.gte": min_vote_count,
                "vote_average.gte": min_vote_average,
            },
            with_original_language=original_language,
        )
        return await self._get_json(f"/discover/{MediaType(media_type).value}", params)

    @cached("tmdb:trending", ttl=CACHE_TTL_SHORT)
    async def trending(self, media_type: str = "all", time_window: str = "day") -> dict[str, Any]:
        """Trending titles; with ``media_type="all"`` each result carries its own ``media_type``."""
        return await self._get_json(f"/trending/{media_type}/{time_window}", self._params())

    @cached("tmdb:search", ttl=CACHE_TTL_SHORT)
    async def search(self, query: str, page: int = 1) -> dict[str, Any]:
        """Search movies and TV shows by title.

        Uses the multi endpoint; people in the results are dropped so every
        entry is a title carrying its own ``media_type``.
        """
        payload = await self._get_json(
            "/search/multi", self._params(query=query, page=page, include_adult="false")
        )
        payload["results"] = [
            r for r in payload.get("results", []) if r.get("media_type") in (MediaType.MOVIE.value, MediaType.TV.value)
        ]
        return payload

    @cached("tmdb:details", ttl=CACHE_TTL_MEDIUM)
    async def get_details(self, tmdb_id: int, media_type: str) -> dict[str, Any] | None:
        """Title details with credits and keywords, or None if the title does not exist."""
        media = MediaType(media_type).value
        path = f"/{media}/{tmdb_id}"
        response = await self._get(path, self._params(append_to_response="credits,keywords"))
        if response.status_code == 404:
            logger.info(f"TMDB {media} {tmdb_id} not found")
            return None
        if response.status_code != 200:
            raise TMDBError(f"TMDB {path}: HTTP {response.status_code}")
        return response.json()


tmdb_service = TMDBService()
