"""Bounded-concurrency background queue for content DNA computation."""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal

from streamsense.constants import (
    DNA_BATCH_DELAY,
    DNA_MAX_CONCURRENT,
    DNA_MAX_RETRIES,
    DNA_RETRY_DELAY,
)
from streamsense.db.crud.watchlist import get_watchlist_refs
from streamsense.db.errors import is_missing_table_error
from streamsense.models.base import utcnow
from streamsense.models.content import MediaType
from streamsense.models.schemas import DNAStatus
from streamsense.services.dna.service import ContentDNAService

logger = logging.getLogger(__name__)

ProgressStatus = Literal["queued", "started", "completed", "retrying", "abandoned", "skipped"]


@dataclass(frozen=True)
class QueueItem:
    tmdb_id: int
    media_type: MediaType
    retry_count: int = 0
    added_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> str:
        return f"{self.media_type.value}-{self.tmdb_id}"


@dataclass
class DNAProgressEvent:
    """Progress event pushed to subscribers (and relayed over SSE)."""

    key: str
    status: ProgressStatus
    retry_count: int
    queue_size: int
    processing: int
    error: str | None = None


ProgressCallback = Callable[[DNAProgressEvent], None]
CompleteCallback = Callable[[], None]


class DNAComputationQueue:
    """Computes DNA for titles that lack it, a few at a time.

    Items move NotQueued -> Queued -> Processing -> Done | Retrying | Abandoned.
    A key is never queued twice: enqueue skips keys that are queued, in
    flight, waiting to retry, or already have a stored record. Batches of at
    most ``max_concurrent`` run together with ``batch_delay`` between them.
    Failed items are retried after ``retry_delay`` up to ``max_retries``
    times, then dropped.

    Subscribers get a :class:`DNAProgressEvent` per state change and a
    completion call whenever the queue drains with no retries pending.
    """

    def __init__(
        self,
        dna_service: ContentDNAService,
        max_concurrent: int = DNA_MAX_CONCURRENT,
        batch_delay: float = DNA_BATCH_DELAY,
        max_retries: int = DNA_MAX_RETRIES,
        retry_delay: float = DNA_RETRY_DELAY,
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        self.dna_service = dna_service
        self.max_concurrent = max_concurrent
        self.batch_delay = batch_delay
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self._queue: deque[QueueItem] = deque()
        self._queued: set[str] = set()
        self._processing: set[str] = set()
        self._retrying: dict[str, asyncio.Task] = {}
        self._worker: asyncio.Task | None = None
        self._idle = asyncio.Event()
        self._idle.set()

        self._progress_callbacks: list[ProgressCallback] = []
        self._complete_callbacks: list[CompleteCallback] = []
        if on_progress is not None:
            self.on_progress(on_progress)
        if on_complete is not None:
            self.on_complete(on_complete)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_progress(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a progress callback; returns a function that unregisters it."""
        self._progress_callbacks.append(callback)
        return lambda: self._progress_callbacks.remove(callback)

    def on_complete(self, callback: CompleteCallback) -> Callable[[], None]:
        self._complete_callbacks.append(callback)
        return lambda: self._complete_callbacks.remove(callback)

    def _emit(self, item: QueueItem, status: ProgressStatus, error: str | None = None) -> None:
        event = DNAProgressEvent(
            key=item.key,
            status=status,
            retry_count=item.retry_count,
            queue_size=len(self._queue),
            processing=len(self._processing),
            error=error,
        )
        for callback in list(self._progress_callbacks):
            try:
                callback(event)
            except Exception:
                logger.warning("DNA progress callback failed", exc_info=True)

    def _finish(self) -> None:
        self._idle.set()
        for callback in list(self._complete_callbacks):
            try:
                callback()
            except Exception:
                logger.warning("DNA completion callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def is_tracked(self, key: str) -> bool:
        return key in self._queued or key in self._processing or key in self._retrying

    async def enqueue(self, tmdb_id: int, media_type: MediaType | str) -> bool:
        """Queue a title for DNA computation; returns False when nothing was queued."""
        item = QueueItem(tmdb_id=tmdb_id, media_type=MediaType(media_type))
        if self.is_tracked(item.key):
            self._emit(item, "skipped")
            return False

        try:
            exists = await self.dna_service.dna_exists(item.tmdb_id, item.media_type)
        except Exception as e:
            logger.warning(f"DNA existence check failed for {item.key}: {e!r}")
            exists = False
        if exists:
            logger.debug(f"DNA already stored for {item.key}")
            self._emit(item, "skipped")
            return False

        # Re-check: another enqueue of the same key may have run while we awaited
        if self.is_tracked(item.key):
            self._emit(item, "skipped")
            return False
        self._push(item)
        return True

    async def scan_watchlist_for_missing_dna(self, user_id: str) -> int:
        """Queue every title on a user's watchlist that has no DNA yet.

        Safe to call repeatedly. Returns the number of titles queued.
        """
        try:
            async with self.dna_service.session_factory() as db:
                refs = await get_watchlist_refs(db, user_id)
        except Exception:
            logger.error(f"DNA scan: failed to read watchlist for {user_id}", exc_info=True)
            return 0
        if not refs:
            return 0

        try:
            existing = await self.dna_service.existing_keys(refs)
        except Exception as e:
            if is_missing_table_error(e):
                logger.info("DNA scan skipped: content_dna table does not exist yet")
            else:
                logger.error("DNA scan: existence check failed", exc_info=True)
            return 0

        queued = 0
        for tmdb_id, media_type in refs:
            item = QueueItem(tmdb_id=tmdb_id, media_type=media_type)
            if item.key in existing or self.is_tracked(item.key):
                continue
            self._push(item)
            queued += 1

        logger.info(f"DNA scan for {user_id}: {len(refs)} titles, {len(existing)} done, {queued} queued")
        return queued

    def get_status(self) -> DNAStatus:
        return DNAStatus(
            queue_size=len(self._queue),
            processing=len(self._processing),
            retrying=len(self._retrying),
            is_running=self._worker is not None and not self._worker.done(),
        )

    def clear(self) -> int:
        """Drop queued items and pending retries; in-flight work finishes. Returns items dropped."""
        dropped = len(self._queue) + len(self._retrying)
        self._queue.clear()
        self._queued.clear()
        for task in self._retrying.values():
            task.cancel()
        self._retrying.clear()
        if self._worker is None or self._worker.done():
            self._idle.set()
        return dropped

    async def wait_until_idle(self) -> None:
        """Wait until nothing is queued, processing or waiting to retry."""
        await self._idle.wait()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def _push(self, item: QueueItem) -> None:
        self._queue.append(item)
        self._queued.add(item.key)
        self._emit(item, "queued")
        if self._worker is None or self._worker.done():
            self._idle.clear()
            self._worker = asyncio.create_task(self._run(), name="dna_queue")

    async def _run(self) -> None:
        try:
            while self._queue:
                batch: list[QueueItem] = []
                while self._queue and len(batch) < self.max_concurrent:
                    item = self._queue.popleft()
                    self._queued.discard(item.key)
                    self._processing.add(item.key)
                    batch.append(item)

                await asyncio.gather(*(self._process(item) for item in batch))

                if self._queue:
                    await asyncio.sleep(self.batch_delay)
        finally:
            self._worker = None
            if not self._queue and not self._retrying:
                self._finish()

    async def _process(self, item: QueueItem) -> None:
        self._emit(item, "started")
        error: str | None = None
        try:
            result = await self.dna_service.compute_content_dna(item.tmdb_id, item.media_type)
            if result is None:
                error = "title not found"
        except Exception as e:
            error = repr(e)
        finally:
            self._processing.discard(item.key)

        if error is None:
            self._emit(item, "completed")
        elif item.retry_count < self.max_retries:
            logger.warning(
                f"DNA computation failed for {item.key} "
                f"(attempt {item.retry_count + 1}/{self.max_retries + 1}): {error}"
            )
            self._emit(item, "retrying", error)
            self._retrying[item.key] = asyncio.create_task(self._retry_later(item))
        else:
            logger.error(f"DNA computation abandoned for {item.key} after {item.retry_count + 1} attempts: {error}")
            self._emit(item, "abandoned", error)

    async def _retry_later(self, item: QueueItem) -> None:
        await asyncio.sleep(self.retry_delay)
        self._retrying.pop(item.key, None)
        self._push(replace(item, retry_count=item.retry_count + 1))
