"""Live event fan-out to open dashboard connections.

One :class:`EventBroadcaster` exists per application (it lives on
``app.state``).  It keeps the set of open push connections and writes each
event, serialised once, to all of them.  Delivery is best-effort: there is
no backlog, no replay and no persistence.  An event broadcast while nobody
is connected is simply dropped.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any
from typing import AsyncIterator
from typing import Optional
from typing import Protocol
from typing import Set

from fastapi.encoders import jsonable_encoder
from sse_starlette.sse import ServerSentEvent

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event names pushed to dashboards."""

    CONNECTED = "connected"
    NEW_ENTRY = "new-entry"
    NEW_SECTION = "new-section"
    NEW_POST = "new-post"
    PROFILE_UPDATED = "profile-updated"
    PROFILE_DELETED = "profile-deleted"


class ConnectionClosedError(Exception):
    """Raised by a connection that can no longer accept frames."""


class Connection(Protocol):
    def send(self, frame: bytes) -> None: ...


def encode_frame(event: EventType | str, payload: Any) -> bytes:
    """Serialise *payload* into a complete ``event:``/``data:`` SSE frame."""

    name = event.value if isinstance(event, EventType) else event
    data = json.dumps(jsonable_encoder(payload), separators=(",", ":"))
    return ServerSentEvent(data=data, event=name).encode()


class QueueConnection:
    """Push connection backed by a bounded queue, drained by the SSE response."""

    QUEUE_SIZE = 100

    def __init__(self, maxsize: Optional[int] = None):
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue(
            maxsize=self.QUEUE_SIZE if maxsize is None else maxsize
        )
        self.closed = False

    def send(self, frame: bytes) -> None:
        if self.closed:
            raise ConnectionClosedError("connection already closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull as exc:
            raise ConnectionClosedError("client is not keeping up") from exc

    async def receive(self) -> Optional[bytes]:
        """Return the next frame, or *None* once the connection is closed."""

        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._queue.full():
            # Make room for the sentinel; the client is being dropped anyway.
            self._queue.get_nowait()
        self._queue.put_nowait(None)


class EventBroadcaster:
    """Registry of open connections plus the fan-out loop."""

    def __init__(self):
        self._connections: Set[Connection] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, connection: Connection) -> None:
        """Start delivering future events to *connection* (no backlog)."""

        self._connections.add(connection)
        logger.info("Dashboard connection registered (%d open)", len(self._connections))

    def unregister(self, connection: Connection) -> None:
        """Forget *connection*.  Safe to call more than once."""

        if connection in self._connections:
            self._connections.discard(connection)
            logger.info("Dashboard connection removed (%d open)", len(self._connections))

    def broadcast(self, event: EventType | str, payload: Any) -> int:
        """Write one event to every registered connection.

        Returns the number of connections that accepted the frame.  A
        connection whose write fails is dropped; the remaining ones still
        receive the event.
        """

        frame = encode_frame(event, payload)
        delivered = 0

        # Iterate over a snapshot: failures below mutate the live set.
        for connection in list(self._connections):
            try:
                connection.send(frame)
            except Exception as exc:  # noqa: BLE001 – isolate per-connection failures
                logger.warning("Dropping dashboard connection after failed write: %s", exc)
                self.unregister(connection)
                close = getattr(connection, "close", None)
                if close is not None:
                    close()
            else:
                delivered += 1

        logger.debug("Broadcast %s to %d connection(s)", event, delivered)
        return delivered


async def event_stream(
    broadcaster: EventBroadcaster,
    connection: Optional[QueueConnection] = None,
) -> AsyncIterator[bytes]:
    """Yield SSE frames for one client until its transport goes away.

    The connection is unregistered in ``finally``, which runs when the
    response is cancelled because the client disconnected.
    """

    connection = connection or QueueConnection()
    broadcaster.register(connection)
    try:
        yield encode_frame(EventType.CONNECTED, {"connections": broadcaster.connection_count})
        while True:
            frame = await connection.receive()
            if frame is None:
                break
            yield frame
    finally:
        broadcaster.unregister(connection)
        connection.close()


__all__ = [
    "Connection",
    "ConnectionClosedError",
    "EventBroadcaster",
    "EventType",
    "QueueConnection",
    "encode_frame",
    "event_stream",
]
