"""Content DNA queue API endpoints."""

import asyncio
import json
import logging
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from streamsense.api.deps import get_current_user_id, get_registry
from streamsense.models.schemas import DNAStatus
from streamsense.services.dna.queue import DNAProgressEvent
from streamsense.services.sessions import UserSessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dna", tags=["dna"])

# How often the stream checks for a disconnected client while idle
DISCONNECT_POLL_SECONDS = 1.0


@router.get("/status", response_model=DNAStatus)
async def get_dna_status(
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UserSessionRegistry, Depends(get_registry)],
) -> DNAStatus:
    return registry.dna_queue.get_status()


@router.post("/scan")
async def scan_missing_dna(
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UserSessionRegistry, Depends(get_registry)],
) -> dict:
    """Queue DNA computation for every watchlist title that lacks it."""
    queued = await registry.dna_queue.scan_watchlist_for_missing_dna(user_id)
    return {
        "status": "success",
        "queued": queued,
        "queue": registry.dna_queue.get_status().model_dump(),
    }


@router.get("/scan/stream")
async def scan_missing_dna_stream(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UserSessionRegistry, Depends(get_registry)],
):
    """Run the watchlist scan and stream queue progress via SSE until it drains."""
    queue = registry.dna_queue

    async def event_generator():
        events: asyncio.Queue[DNAProgressEvent | None] = asyncio.Queue()
        unsubscribe_progress = queue.on_progress(events.put_nowait)
        unsubscribe_complete = queue.on_complete(lambda: events.put_nowait(None))
        try:
            queued = await queue.scan_watchlist_for_missing_dna(user_id)
            yield {"event": "scan", "data": json.dumps({"queued": queued})}

            if queued == 0 and not queue.get_status().is_running:
                yield {"event": "complete", "data": queue.get_status().model_dump_json()}
                return

            while True:
                if await request.is_disconnected():
                    logger.info(f"Client disconnected during DNA scan for {user_id}")
                    break
                try:
                    event = await asyncio.wait_for(events.get(), timeout=DISCONNECT_POLL_SECONDS)
                except TimeoutError:
                    continue

                if event is None:
                    yield {"event": "complete", "data": queue.get_status().model_dump_json()}
                    break
                yield {"event": "progress", "data": json.dumps(asdict(event))}
        finally:
            unsubscribe_progress()
            unsubscribe_complete()

    return EventSourceResponse(event_generator())
