"""Server-Sent Events stream for live dashboards."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi import Depends
from sse_starlette.sse import EventSourceResponse

from herald.dependencies.services import get_broadcaster
from herald.events.broadcaster import EventBroadcaster
from herald.events.broadcaster import event_stream

router = APIRouter(tags=["events"])

PING_SECONDS = 15


@router.get("/events")
async def events(broadcaster: EventBroadcaster = Depends(get_broadcaster)) -> EventSourceResponse:
    """Persistent stream of ``new-entry``, ``new-post``, ``new-section`` and profile events.

    There is no replay: a client only sees events broadcast while it is
    connected.  Keep-alive pings are sent every ``PING_SECONDS``.
    """

    return EventSourceResponse(event_stream(broadcaster), ping=PING_SECONDS)
