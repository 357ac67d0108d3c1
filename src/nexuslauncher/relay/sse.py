"""Server-Sent Events framing and the streaming response wrapper."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator

from fastapi.responses import StreamingResponse

from nexuslauncher.domain.models import ProgressEvent
from nexuslauncher.relay.state import ServerContext

logger = logging.getLogger(__name__)

SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    # Stop reverse proxies from buffering the stream
    "X-Accel-Buffering": "no",
}


def format_event(event: ProgressEvent) -> str:
    """One ``data:`` frame. Unset optional fields are left out of the JSON."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"


async def event_stream(
    events: AsyncIterable[ProgressEvent],
    context: ServerContext | None = None,
) -> AsyncIterator[str]:
    """Yield each event's frame right away, publishing it through ``context`` first.

    Without a context events are framed as they are (keep-alive beats
    already carry the published status).

    When the consumer goes away the upstream iterator is closed as well,
    so whatever produces the events gets to clean up.
    """
    try:
        async for event in events:
            if context is not None:
                event = context.publish(event)
            yield format_event(event)
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.debug("Event stream finished")


def sse_response(frames: AsyncIterable[str]) -> StreamingResponse:
    """Wrap a frame iterator in a streaming response with SSE headers."""
    return StreamingResponse(frames, media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)
