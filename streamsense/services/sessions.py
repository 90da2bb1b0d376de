"""Per-user service wiring.

Each user gets their own session cache, scorer, recommendation pool and taste
profile manager. The DNA service and computation queue are process-wide.
"""

import asyncio
import logging
import random
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from streamsense.constants import MAX_USER_SESSIONS
from streamsense.services.dna.queue import DNAComputationQueue
from streamsense.services.dna.service import ContentDNAService
from streamsense.services.metadata.tmdb import TMDBService, tmdb_service
from streamsense.services.recommendations.cache import RecommendationCacheManager
from streamsense.services.recommendations.scorer import RecommendationScorer
from streamsense.services.recommendations.session_cache import SessionCache
from streamsense.services.taste.builder import TasteProfileBuilder
from streamsense.services.taste.manager import TasteProfileManager

logger = logging.getLogger(__name__)


@dataclass
class UserSession:
    user_id: str
    session_cache: SessionCache
    scorer: RecommendationScorer
    recommendations: RecommendationCacheManager
    taste: TasteProfileManager


class UserSessionRegistry:
    """Creates user sessions on first use and tears them down on shutdown.

    At most ``max_sessions`` are kept; the least recently used one is evicted
    to make room and its taste timer is stopped in the background.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tmdb: TMDBService | None = None,
        rng_factory: Callable[[], random.Random] | None = None,
        dna_queue: DNAComputationQueue | None = None,
        start_taste_timers: bool = False,
        max_sessions: int = MAX_USER_SESSIONS,
    ) -> None:
        self.session_factory = session_factory
        self.tmdb = tmdb if tmdb is not None else tmdb_service
        self.rng_factory = rng_factory if rng_factory is not None else random.Random
        self.dna_service = ContentDNAService(session_factory, self.tmdb)
        self.dna_queue = dna_queue if dna_queue is not None else DNAComputationQueue(self.dna_service)
        self.taste_builder = TasteProfileBuilder(session_factory)
        self.start_taste_timers = start_taste_timers
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, UserSession] = OrderedDict()
        self._evictions: set[asyncio.Task] = set()

    def get(self, user_id: str) -> UserSession:
        session = self._sessions.get(user_id)
        if session is not None:
            self._sessions.move_to_end(user_id)
            return session

        if len(self._sessions) >= self.max_sessions:
            _, oldest = self._sessions.popitem(last=False)
            self._evict(oldest)

        session_cache = SessionCache()
        scorer = RecommendationScorer(
            self.session_factory,
            tmdb=self.tmdb,
            session_cache=session_cache,
            rng=self.rng_factory(),
        )
        taste = TasteProfileManager(user_id, self.taste_builder)
        if self.start_taste_timers:
            taste.start()

        session = UserSession(
            user_id=user_id,
            session_cache=session_cache,
            scorer=scorer,
            recommendations=RecommendationCacheManager(user_id, scorer),
            taste=taste,
        )
        self._sessions[user_id] = session
        logger.debug(f"Created session for {user_id}")
        return session

    def _evict(self, session: UserSession) -> None:
        session.session_cache.clear()
        task = asyncio.get_running_loop().create_task(
            session.taste.stop(), name=f"evict_session:{session.user_id}"
        )
        self._evictions.add(task)
        task.add_done_callback(self._evictions.discard)
        logger.debug(f"Evicted session for {session.user_id}")

    async def wait_for_evictions(self) -> None:
        """Wait until evicted sessions have stopped their background work."""
        if self._evictions:
            await asyncio.gather(*self._evictions, return_exceptions=True)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def close(self) -> None:
        """Stop taste timers and drop queued DNA work."""
        await self.wait_for_evictions()
        for session in self._sessions.values():
            await session.taste.stop()
            session.session_cache.clear()
        self._sessions.clear()
        dropped = self.dna_queue.clear()
        if dropped:
            logger.info(f"Dropped {dropped} pending DNA computations on shutdown")
