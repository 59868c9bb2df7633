"""Root conftest: shared fixtures for store, channel and app-level tests."""

import asyncio
import os

import pytest
from httpx import ASGITransport, AsyncClient

# Keep test output readable and never pick up a developer's .env overrides.
os.environ.setdefault("CHECKIN_LOG_FORMAT", "text")

from weather_checkin.app import create_app  # noqa: E402
from weather_checkin.config import Settings  # noqa: E402
from weather_checkin.propagation import BroadcastChannel  # noqa: E402
from weather_checkin.store import RoomStore  # noqa: E402


class FakeWebSocket:
    """Collects whatever the channel sends; optionally fails on send."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


async def flush(rounds: int = 5):
    """Let sender tasks drain their queues."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def store():
    return RoomStore()


@pytest.fixture
def channel():
    return BroadcastChannel(queue_size=8)


@pytest.fixture
def settings():
    return Settings(room_ttl_hours=0, log_format="text", propagation_mode="push")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
