"""Stale-while-revalidate lifecycle for one user's taste profile."""

import asyncio
import enum
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from streamsense.constants import (
    MAX_CONSECUTIVE_FAILURES,
    TASTE_PROFILE_REFRESH_INTERVAL,
    TASTE_PROFILE_STALE_HOURS,
)
from streamsense.models.base import ensure_utc, utcnow
from streamsense.models.content import MediaType
from streamsense.models.schemas import TasteProfile, TasteProfileResponse
from streamsense.services.taste.builder import TasteProfileBuilder
from streamsense.utils.logging import LogContext

logger = logging.getLogger(__name__)


class ProfileState(str, enum.Enum):
    EMPTY = "empty"
    LOADING = "loading"
    FRESH = "fresh"
    STALE = "stale"


class TasteProfileManager:
    """Serves a user's taste profile and keeps it fresh.

    - ``load()`` returns the stored profile immediately; when it is older than
      ``stale_after`` a background rebuild is started. With no stored profile
      the first rebuild runs inline.
    - ``start()`` runs a periodic rebuild every ``refresh_interval`` seconds.
    - Only one rebuild runs at a time; requests made meanwhile are dropped.
    - ``update_after_interaction()`` folds a single title into the profile
      without a history rescan.
    """

    def __init__(
        self,
        user_id: str,
        builder: TasteProfileBuilder,
        clock: Callable[[], datetime] = utcnow,
        stale_after: timedelta = timedelta(hours=TASTE_PROFILE_STALE_HOURS),
        refresh_interval: float = TASTE_PROFILE_REFRESH_INTERVAL,
    ) -> None:
        self.user_id = user_id
        self.builder = builder
        self.clock = clock
        self.stale_after = stale_after
        self.refresh_interval = refresh_interval

        self.profile: TasteProfile | None = None
        self.state = ProfileState.EMPTY
        self.error: str | None = None
        self.rebuild_count = 0

        self._rebuilding = False
        self._background: asyncio.Task | None = None
        self._timer: asyncio.Task | None = None
        self._shutdown = asyncio.Event()
        self.log = LogContext(logger, user=user_id)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self.state is ProfileState.LOADING

    @property
    def last_updated(self) -> datetime | None:
        return ensure_utc(self.profile.updated_at) if self.profile is not None else None

    @property
    def is_stale(self) -> bool:
        if self.profile is None:
            return False
        updated = self.last_updated
        return updated is None or self.clock() - updated > self.stale_after

    def snapshot(self) -> TasteProfileResponse:
        return TasteProfileResponse(
            state=self.state.value,
            is_stale=self.is_stale,
            is_loading=self.is_loading,
            last_updated=self.last_updated,
            profile=self.profile,
        )

    # ------------------------------------------------------------------
    # Loading and rebuilding
    # ------------------------------------------------------------------

    async def load(self) -> TasteProfile | None:
        """Serve the stored profile, revalidating in the background when stale."""
        if self.profile is None:
            self.state = ProfileState.LOADING
        try:
            stored = await self.builder.load(self.user_id)
        except Exception as e:
            self.log.error(f"Failed to load taste profile: {e!r}")
            self.error = str(e)
            self._settle()
            return self.profile

        if stored is None:
            await self.refresh_profile()
            return self.profile

        self.profile = stored
        self.error = None
        self._settle()
        if self.state is ProfileState.STALE:
            self.log.info(f"Taste profile stale (updated {self.last_updated}); rebuilding in background")
            self._schedule_rebuild()
        return self.profile

    async def refresh_profile(self) -> TasteProfile | None:
        """Full rebuild now; dropped if one is already running."""
        if self._rebuilding:
            self.log.debug("Rebuild already in progress; request dropped")
            return self.profile
        self._rebuilding = True
        await self._rebuild()
        return self.profile

    def _schedule_rebuild(self) -> bool:
        if self._rebuilding:
            self.log.debug("Rebuild already in progress; background request dropped")
            return False
        self._rebuilding = True
        self._background = asyncio.create_task(self._rebuild(), name=f"taste_rebuild:{self.user_id}")
        return True

    async def _rebuild(self) -> None:
        """Run one rebuild; callers set ``_rebuilding`` before scheduling it."""
        if self.profile is None:
            self.state = ProfileState.LOADING
        self.rebuild_count += 1
        try:
            self.profile = await self.builder.rebuild(self.user_id)
            self.error = None
        except Exception as e:
            self.log.exception("Taste profile rebuild failed")
            self.error = str(e)
        finally:
            self._rebuilding = False
            self._settle()

    def _settle(self) -> None:
        if self.profile is None:
            self.state = ProfileState.EMPTY
        elif self.is_stale:
            self.state = ProfileState.STALE
        else:
            self.state = ProfileState.FRESH

    async def wait_for_background(self) -> None:
        """Wait for a background rebuild started by :meth:`load`, if any."""
        if self._background is not None:
            await self._background

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    async def update_after_interaction(
        self,
        tmdb_id: int,
        media_type: MediaType | str,
        rating: int | None = None,
        genre_ids: list[int] | None = None,
        counted_before: bool = False,
        previous_rating: int | None = None,
    ) -> TasteProfile | None:
        """Fold one interaction into the profile (full rebuild if there is none yet).

        ``counted_before`` and ``previous_rating`` describe the title as it stood
        in the history before this interaction, so a title is never counted twice.
        """
        if self.profile is None:
            return await self.refresh_profile()
        if self._rebuilding:
            # The running rebuild reads the interaction from history
            return self.profile
        try:
            self.profile = await self.builder.update_after_interaction(
                self.profile,
                tmdb_id,
                media_type,
                rating=rating,
                genre_ids=genre_ids,
                counted_before=counted_before,
                previous_rating=previous_rating,
            )
            self.error = None
        except Exception as e:
            self.log.error(f"Incremental taste update failed: {e!r}")
            self.error = str(e)
        self._settle()
        return self.profile

    # ------------------------------------------------------------------
    # Periodic refresh
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._timer is None or self._timer.done():
            self._shutdown.clear()
            self._timer = asyncio.create_task(self._periodic_refresh(), name=f"taste_timer:{self.user_id}")

    async def stop(self) -> None:
        self._shutdown.set()
        tasks = [t for t in (self._timer, self._background) if t is not None and not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._timer = None

    async def _periodic_refresh(self) -> None:
        consecutive_failures = 0

        while not self._shutdown.is_set():
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self.refresh_interval)
                break
            except TimeoutError:
                pass

            await self.refresh_profile()
            if self.error is None:
                consecutive_failures = 0
                continue

            consecutive_failures += 1
            self.log.error(
                f"Periodic taste refresh failed ({consecutive_failures}/{MAX_CONSECUTIVE_FAILURES})"
            )
            if consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                self.log.error("Taste refresh: too many consecutive failures, backing off")
                try:
                    await asyncio.wait_for(self._shutdown.wait(), timeout=self.refresh_interval)
                    break
                except TimeoutError:
                    consecutive_failures = 0
