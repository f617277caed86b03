"""``GET /api/events`` over a real HTTP connection.

``TestClient`` buffers whole responses, so the never-ending SSE stream is
exercised against uvicorn running in a background thread.
"""

import json
import threading
import time

import httpx
import pytest
import uvicorn


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.02)
    return True


def _sse_events(lines):
    """Group streamed lines into ``(event, data)`` pairs, skipping pings."""

    event, data = "message", []
    for line in lines:
        if line == "":
            if data:
                yield event, json.loads("\n".join(data))
            event, data = "message", []
        elif line.startswith(":"):
            continue
        elif line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data.append(line[len("data:") :].strip())


@pytest.fixture
def live_server(app):
    server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=0, log_level="warning"))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    if not _wait_for(lambda: server.started, timeout=10):
        server.should_exit = True
        pytest.fail("uvicorn did not start")

    port = server.servers[0].sockets[0].getsockname()[1]
    yield f"http://127.0.0.1:{port}"

    server.should_exit = True
    thread.join(timeout=10)


def test_stream_delivers_live_events_and_unregisters_on_close(live_server, broadcaster):
    with httpx.Client(base_url=live_server, timeout=10) as http:
        with http.stream("GET", "/api/events") as resp:
            assert resp.status_code == 200
            assert resp.headers["content-type"].startswith("text/event-stream")

            events = _sse_events(resp.iter_lines())
            assert next(events) == ("connected", {"connections": 1})
            assert broadcaster.connection_count == 1

            posted = http.post("/api/visitor", json={"name": "Zed"})
            assert posted.status_code == 200

            event, payload = next(events)
            assert event == "new-entry"
            assert payload["name"] == "Zed"
            assert payload["id"] == posted.json()["id"]

    # Closing the client is a disconnect; the server drops the connection.
    assert _wait_for(lambda: broadcaster.connection_count == 0)
