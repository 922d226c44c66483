"""Shared test fixtures."""

import copy
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from admin_carrier.api.client import BackendClient
from admin_carrier.auth.session import SessionManager
from admin_carrier.cleanup import StoreCleanup
from admin_carrier.database.repository import Repository
from admin_carrier.database.store import LocalStore


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class FakeBackend:
    """Scriptable backend behind httpx.MockTransport.

    ``responses`` maps a path to ``(status, json_body)``, to an
    exception class to raise, or to a handler callable.
    """

    def __init__(self):
        self.responses: dict = {}
        self.calls: list[httpx.Request] = []

    def set(self, path: str, status: int = 200, body=None):
        self.responses[path] = (status, body if body is not None else {})

    def fail(self, path: str, exc=httpx.ConnectError):
        self.responses[path] = exc

    def on(self, path: str, func):
        """Answer ``path`` with ``func(request) -> httpx.Response``."""
        self.responses[path] = func

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [c for c in self.calls if c.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        scripted = self.responses.get(request.url.path)
        if scripted is None:
            return httpx.Response(404, json={"error": "no route"})
        if isinstance(scripted, type) and issubclass(scripted, Exception):
            raise scripted("scripted failure", request=request)
        if callable(scripted):
            return scripted(request)
        status, body = scripted
        return httpx.Response(status, json=body)


SAMPLE_BULK = {
    "departments": [
        {"id": 9, "name": "Math"},
        {"id": 10, "name": "Physics"},
    ],
    "courses": [
        {"id": 2, "name": "Calculus I", "year": 1, "departments": [9]},
        {"id": 3, "name": "Mechanics", "year": 2, "departments": [9, 10]},
    ],
    "topics": [
        {"id": 5, "course_id": 2, "title": "X", "page_range": "1-4",
         "refined_summary": "Limits, refined.", "raw_text": "raw limits",
         "updated_at": "2026-10-01T10:00:00Z",
         "created_at": "2026-09-01T10:00:00Z", "is_premium": False},
        {"id": 6, "course_id": 3, "title": "Newton", "page_range": "5-9",
         "refined_summary": "", "raw_text": "F = ma",
         "updated_at": "2026-10-02T10:00:00Z",
         "created_at": "2026-09-02T10:00:00Z", "is_premium": True},
    ],
    "premium_users": [{"id": 1, "code": "P-001"}],
    "sync_timestamp": "2026-10-19T08:00:00+00:00",
    "total_topics": 2,
    "total_users": 1,
}


@pytest.fixture
def bulk_payload():
    """A fresh copy of a realistic bulk-download payload."""
    return copy.deepcopy(SAMPLE_BULK)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return tmp_path / "carrier.db"


@pytest.fixture
def store(db_path):
    """Provide an opened store with no recovery delay."""
    s = LocalStore(db_path, recovery_delay=0)
    s.open()
    return s


@pytest.fixture
def repo(store):
    return Repository(store)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    c = BackendClient(
        base_url="http://backend.test",
        timeout=1.0,
        transport=httpx.MockTransport(backend.handler),
    )
    yield c
    c.close()


@pytest.fixture
def reload_hook():
    return MagicMock(name="reload")


@pytest.fixture
def cleanup(store, client, reload_hook):
    return StoreCleanup(store, client, reload=reload_hook, reload_delay=0)


@pytest.fixture
def sessions(repo, client, cleanup, clock):
    return SessionManager(repo, client, cleanup, now=clock)


@pytest.fixture
def logged_in(sessions, backend):
    """A SessionManager with an active session for 'admin'."""
    backend.set("/auth/login/", body={
        "success": True, "username": "admin", "user_id": 1, "is_admin": True,
    })
    sessions.login("admin", "secret")
    return sessions
