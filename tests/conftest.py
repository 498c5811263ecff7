"""
Pytest configuration and fixtures for MapTo tests.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from mapto.database import make_engine
from mapto.dependencies import get_repository
from mapto.limiter import limiter
from mapto.main import app
from mapto.reminders.notifier import GRANTED, DEFAULT, DENIED, Notifier
from mapto.store import JsonFilePostRepository, MemoryPostRepository, SqlPostRepository

# Disable rate limiting for tests
limiter.enabled = False

TTL_MS = 24 * 60 * 60 * 1000
JST = timezone(timedelta(hours=9))


@pytest.fixture(scope="function")
def repository():
    """A fresh in-memory post store."""
    return MemoryPostRepository(ttl_ms=TTL_MS)


@pytest.fixture(scope="function")
def client(repository):
    """Create a test client bound to the ``repository`` fixture."""
    app.dependency_overrides[get_repository] = lambda: repository
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(params=["memory", "json", "sql"])
def any_repository(request, tmp_path):
    """Each store backend in turn, for behavioral parity checks."""
    if request.param == "memory":
        repo = MemoryPostRepository(ttl_ms=TTL_MS)
    elif request.param == "json":
        repo = JsonFilePostRepository(tmp_path / "posts.json", ttl_ms=TTL_MS)
    else:
        repo = SqlPostRepository(make_engine("sqlite:///:memory:"), ttl_ms=TTL_MS)
    yield repo
    repo.close()


# ============================================================
# REMINDER FIXTURES
# ============================================================

class RecordingNotifier(Notifier):
    """Notifier that remembers what it showed."""

    def __init__(self, permission: str = GRANTED, grant_on_request: bool = True):
        self.state = permission
        self.grant_on_request = grant_on_request
        self.shown = []

    def permission(self) -> str:
        return self.state

    def request_permission(self) -> str:
        if self.state == DEFAULT:
            self.state = GRANTED if self.grant_on_request else DENIED
        return self.state

    def show(self, title: str, body: str, tag: str, url: str = "") -> None:
        self.shown.append({"title": title, "body": body, "tag": tag, "url": url})


class FakeTimer:
    """Stands in for threading.Timer; fire() runs the callback by hand."""

    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback()


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled]


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 10, 18, 9, 0, tzinfo=JST))
