"""Read-through candidate pool with genre and media-type partitions."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from streamsense.constants import (
    CACHE_GENRE_BATCH_LIMIT,
    CACHE_POOL_LIMIT,
    CACHE_TOP_UP_THRESHOLD,
    UNDERREPRESENTED_GENRES,
)
from streamsense.genres import FILTER_GENRES, matches_filter_genre
from streamsense.models.base import utcnow
from streamsense.models.schemas import UnifiedContent
from streamsense.services.recommendations.scorer import RecommendationScorer
from streamsense.utils.logging import LogContext

logger = logging.getLogger(__name__)

BrowseMediaType = Literal["all", "movie", "tv"]
ALL_GENRES = "All"


def is_presentable(item: UnifiedContent) -> bool:
    """Items need a poster and a title to be shown."""
    return bool(item.poster_path) and bool(item.title)


@dataclass
class RecommendationCache:
    """In-memory partitions over one deduplicated pool.

    ``by_genre`` and ``by_media_type`` hold references to the same objects as
    ``all``; :meth:`merge` updates all three without yielding to the event loop.
    """

    all: list[UnifiedContent] = field(default_factory=list)
    by_genre: dict[str, list[UnifiedContent]] = field(
        default_factory=lambda: {name: [] for name in FILTER_GENRES}
    )
    by_media_type: dict[str, list[UnifiedContent]] = field(
        default_factory=lambda: {"movie": [], "tv": []}
    )
    last_fetched: datetime | None = None
    _keys: set[str] = field(default_factory=set, repr=False)

    @classmethod
    def build(cls, items: Iterable[UnifiedContent]) -> "RecommendationCache":
        cache = cls()
        cache.merge(items)
        cache.last_fetched = utcnow()
        return cache

    def merge(self, items: Iterable[UnifiedContent]) -> list[UnifiedContent]:
        """Add new, presentable, unique items to every partition; returns what was added."""
        added = []
        for item in items:
            if item.key in self._keys or not is_presentable(item):
                continue
            self._keys.add(item.key)
            self.all.append(item)
            self.by_media_type[item.type.value].append(item)
            for name, bucket in self.by_genre.items():
                if matches_filter_genre(item, name):
                    bucket.append(item)
            added.append(item)
        return added

    def filter(self, media_type: BrowseMediaType = "all", genre: str = ALL_GENRES) -> list[UnifiedContent]:
        """Start from the narrowest partition and intersect with the other filter."""
        if genre != ALL_GENRES:
            items = self.by_genre.get(genre, [])
            if media_type != "all":
                items = [item for item in items if item.type.value == media_type]
            return list(items)
        if media_type != "all":
            return list(self.by_media_type[media_type])
        return list(self.all)

    def __contains__(self, key: str) -> bool:
        return key in self._keys


class RecommendationCacheManager:
    """Loads the candidate pool for a user once and serves filtered reads.

    Reads never hit the network unless a genre partition is sparse, in which
    case a genre-specific fetch tops it up before filtering again.
    """

    def __init__(self, user_id: str, scorer: RecommendationScorer) -> None:
        self.user_id = user_id
        self.scorer = scorer
        self.cache: RecommendationCache | None = None
        self.is_loading = False
        self.error: str | None = None
        self.log = LogContext(logger, user=user_id)

    @property
    def is_loaded(self) -> bool:
        return self.cache is not None

    async def load(self) -> RecommendationCache:
        """Pre-fetch the candidate pool, once per manager unless refreshed."""
        if self.cache is not None:
            return self.cache
        return await self.refresh()

    async def refresh(self, force: bool = False) -> RecommendationCache:
        """Rebuild the pool; ``force`` also forgets what this session has already shown."""
        self.is_loading = True
        self.error = None
        try:
            smart = await self.scorer.get_smart_recommendations(
                self.user_id, media_type="mixed", limit=CACHE_POOL_LIMIT, force_refresh=force
            )
            pool = smart.all_items()
            for genre in UNDERREPRESENTED_GENRES:
                try:
                    pool.extend(
                        await self.scorer.get_genre_recommendations(
                            self.user_id, genre, limit=CACHE_GENRE_BATCH_LIMIT
                        )
                    )
                except Exception as e:
                    self.log.warning(f"Pre-fetch for {genre} failed: {e!r}")
            self.cache = RecommendationCache.build(pool)
            self.log.info(f"Recommendation cache loaded: {len(self.cache.all)} items")
        except Exception as e:
            self.log.exception("Recommendation cache load failed")
            self.error = str(e)
            self.cache = RecommendationCache.build([])
        finally:
            self.is_loading = False
        return self.cache

    async def get_filtered(
        self, media_type: BrowseMediaType = "all", genre: str = ALL_GENRES
    ) -> list[UnifiedContent]:
        """Filtered view of the pool, topped up from the network for sparse genres.

        Raises:
            ValueError: ``genre`` is not part of the browse taxonomy
        """
        if genre != ALL_GENRES and genre not in FILTER_GENRES:
            raise ValueError(f"Unknown genre: {genre}")

        cache = await self.load()
        results = cache.filter(media_type, genre)
        if genre == ALL_GENRES or len(results) >= CACHE_TOP_UP_THRESHOLD:
            return results

        self.log.debug(f"Topping up {genre}/{media_type}: only {len(results)} cached")
        try:
            fetched = await self.scorer.get_genre_recommendations(
                self.user_id, genre, media_type=media_type, limit=CACHE_GENRE_BATCH_LIMIT
            )
        except Exception as e:
            self.log.warning(f"Top-up for {genre} failed: {e!r}")
            return results

        # The cache may have been replaced by a refresh while awaiting
        cache = self.cache if self.cache is not None else cache
        added = cache.merge(fetched)
        self.log.debug(f"Top-up added {len(added)} items to {genre}")
        return cache.filter(media_type, genre)
