import os

# Set *before* any project imports so settings validation is relaxed
os.environ["TESTING"] = "1"
os.environ["HERALD_ENV_FILE"] = os.devnull

import json
from typing import List
from typing import Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from herald.config import Settings
from herald.events.broadcaster import EventBroadcaster
from herald.main import create_app
from herald.services.notifier import Notifier
from herald.testing.memory import InMemoryDocumentStore
from herald.testing.memory import InMemoryImageStorage

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct horse battery staple"
WEBHOOK_URL = "https://hooks.example.test/webhook"


def parse_frame(frame: bytes) -> Tuple[str, dict]:
    """Return ``(event, data)`` from one encoded SSE frame."""

    event = "message"
    data_lines = []
    for line in frame.decode().splitlines():
        if line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:") :].strip())
    return event, json.loads("\n".join(data_lines))


class RecordingConnection:
    """Broadcast connection that keeps every frame it is sent."""

    def __init__(self):
        self.frames: List[bytes] = []

    def send(self, frame: bytes) -> None:
        self.frames.append(frame)

    def events(self) -> List[Tuple[str, dict]]:
        return [parse_frame(f) for f in self.frames]


class BrokenConnection:
    """Connection whose transport has gone away."""

    def __init__(self):
        self.closed = False

    def send(self, frame: bytes) -> None:
        raise ConnectionResetError("peer went away")

    def close(self) -> None:
        self.closed = True


class FakeWebhook:
    """``httpx.MockTransport`` handler that records posted messages."""

    def __init__(self):
        self.messages: List[str] = []
        self.fail = False
        self.status_code = 204

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            raise httpx.ConnectError("webhook unreachable", request=request)
        self.messages.append(json.loads(request.content)["content"])
        return httpx.Response(self.status_code)


def make_settings(**overrides) -> Settings:
    values = dict(
        testing=True,
        jwt_secret="test-signing-secret-0123456789",
        token_ttl_hours=2.0,
        admin_username=ADMIN_USERNAME,
        admin_password=ADMIN_PASSWORD,
        admin_password_hash=None,
        firebase_config=None,
        firebase_storage_bucket=None,
        notify_webhook_url=WEBHOOK_URL,
        log_level="WARNING",
        allowed_cors_origins="",
        port=3000,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def images() -> InMemoryImageStorage:
    return InMemoryImageStorage()


@pytest.fixture
def webhook() -> FakeWebhook:
    return FakeWebhook()


@pytest.fixture
def notifier(settings, webhook) -> Notifier:
    return Notifier(settings.notify_webhook_url, transport=httpx.MockTransport(webhook))


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    return EventBroadcaster()


@pytest.fixture
def recorder(broadcaster) -> RecordingConnection:
    connection = RecordingConnection()
    broadcaster.register(connection)
    return connection


@pytest.fixture
def app(settings, store, images, notifier, broadcaster):
    return create_app(settings, store=store, images=images, notifier=notifier, broadcaster=broadcaster)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    """Bearer header for the admin; the login cookie is dropped."""

    resp = client.post("/api/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['token']}"}
