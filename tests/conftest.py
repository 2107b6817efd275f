"""
Shared fixtures: message builder, fake clock/sleep and an in-memory database.
"""

import base64

import pytest

from inbox_unsubscriber.database import DatabaseManager
from inbox_unsubscriber.email_processor.message import MessagePart, MessageRecord


@pytest.fixture
def anyio_backend():
    return "asyncio"


def encode_body(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def build_message(
    message_id="m1",
    sender="Sender <sender@example.com>",
    subject="Hello",
    snippet="",
    headers=None,
    text=None,
    html=None,
    internal_date=None,
):
    """Build a MessageRecord with optional plain-text and HTML bodies."""
    all_headers = [("From", sender), ("Subject", subject), ("Date", "Mon, 1 Jan 2024 10:00:00 +0000")]
    all_headers.extend((headers or {}).items())

    parts = []
    if text is not None:
        parts.append(MessagePart(mime_type="text/plain", data=encode_body(text)))
    if html is not None:
        parts.append(MessagePart(mime_type="text/html", data=encode_body(html)))

    return MessageRecord(
        id=message_id,
        thread_id=f"t-{message_id}",
        headers=tuple(all_headers),
        snippet=snippet,
        payload=MessagePart(mime_type="multipart/alternative", parts=tuple(parts)),
        internal_date=internal_date,
    )


@pytest.fixture
def make_message():
    return build_message


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeSleep:
    """Records requested sleeps and advances the paired clock instead of waiting."""

    def __init__(self, clock=None):
        self.clock = clock
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(clock):
    return FakeSleep(clock)


@pytest.fixture
def db_manager():
    """Fresh in-memory database with all tables."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.initialize_database()
    yield manager
    manager.dispose()


@pytest.fixture
def recording_sleep():
    """Sleep that only records, leaving the clock alone."""
    return FakeSleep()
