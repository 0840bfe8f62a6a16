"""Server-sent event stream of schedule mutations."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from kitting_scheduler.core.events import EventBus, get_event_bus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


async def _sse_stream(request: Request, events: EventBus) -> AsyncIterator[str]:
    yield ": connected\n\n"
    async for message in events.listen():
        if await request.is_disconnected():
            logger.debug("Event stream client disconnected")
            break
        yield f"data: {message}\n\n"


@router.get("")
async def stream_events(
    request: Request,
    events: EventBus = Depends(get_event_bus),
) -> StreamingResponse:
    """Stream ``{type, data}`` messages so open calendars can refresh."""
    return StreamingResponse(
        _sse_stream(request, events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
