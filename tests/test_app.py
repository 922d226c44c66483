"""Tests for Carrier wiring, shutdown and restart."""

from datetime import timedelta

import httpx
import pytest

from admin_carrier.api.client import BULK_DOWNLOAD_PATH, LOGIN_PATH, BackendClient
from admin_carrier.app import Carrier
from admin_carrier.database.models import ContentSnapshot, utcnow

LOGIN_OK = {"success": True, "username": "admin", "user_id": 1, "is_admin": True}


def _build_carrier(db_path, backend, reload_hook) -> Carrier:
    client = BackendClient(
        base_url="http://backend.test",
        timeout=1.0,
        transport=httpx.MockTransport(backend.handler),
    )
    c = Carrier(db_path=db_path, client=client, reload=reload_hook)
    c.store.recovery_delay = 0
    c.cleanup.reload_delay = 0
    c.start()
    return c


@pytest.fixture
def carrier(db_path, backend, reload_hook):
    c = _build_carrier(db_path, backend, reload_hook)
    yield c
    c.client.close()


@pytest.fixture
def cookie_backend(backend, bulk_payload):
    """Backend that issues a session cookie and requires it for downloads."""
    backend.on(LOGIN_PATH, lambda request: httpx.Response(
        200, json=LOGIN_OK, headers={"Set-Cookie": "sessionid=abc; Path=/"},
    ))

    def bulk(request):
        if "sessionid=abc" not in request.headers.get("cookie", ""):
            return httpx.Response(403, json={
                "detail": "Authentication credentials were not provided.",
            })
        return httpx.Response(200, json=bulk_payload)

    backend.on(BULK_DOWNLOAD_PATH, bulk)
    return backend


class TestCarrier:
    def test_start_creates_store(self, carrier, db_path):
        assert db_path.exists()
        assert carrier.cleanup.get_database_version() == 1

    def test_services_share_the_store(self, carrier, bulk_payload):
        carrier.repo.save_content(ContentSnapshot.from_bulk_download(bulk_payload))
        assert carrier.responder.handle("/topics/5/")["title"] == "X"
        assert carrier.sync.get_sync_status()["topics"] == 2

    def test_shutdown_keeps_data(self, carrier, db_path):
        carrier.repo.add_pending_registration("Ada", "C-1")
        carrier.shutdown()
        assert db_path.exists()

    def test_shutdown_while_logging_out_wipes(self, carrier, backend, db_path):
        backend.set(LOGIN_PATH, body=LOGIN_OK)
        carrier.sessions.login("admin", "pw")
        carrier.repo.add_pending_registration("Ada", "C-1")

        carrier.shutdown(logging_out=True)

        assert not db_path.exists()


class TestRestart:
    def test_saved_session_still_syncs_after_restart(
        self, db_path, cookie_backend, reload_hook
    ):
        first = _build_carrier(db_path, cookie_backend, reload_hook)
        first.sessions.login("admin", "pw")
        assert first.sync.download()["status"] == "success"
        first.shutdown()

        second = _build_carrier(db_path, cookie_backend, reload_hook)
        try:
            assert second.sessions.is_logged_in()
            result = second.sync.download()
        finally:
            second.shutdown()

        assert result["status"] == "success"
        assert result["topics"] == 2
        last_call = cookie_backend.calls_to(BULK_DOWNLOAD_PATH)[-1]
        assert "sessionid=abc" in last_call.headers["cookie"]

    def test_logout_does_not_leave_credentials_behind(
        self, db_path, cookie_backend, reload_hook
    ):
        cookie_backend.set("/auth/logout/", body={"success": True})
        first = _build_carrier(db_path, cookie_backend, reload_hook)
        first.sessions.login("admin", "pw")
        first.sessions.logout()
        first.shutdown()

        second = _build_carrier(db_path, cookie_backend, reload_hook)
        try:
            assert second.sessions.is_logged_in() is False
            assert second.repo.get_credentials() == []
            assert "sessionid" not in second.client.client.cookies
        finally:
            second.shutdown()

    def test_expired_session_is_not_restored(
        self, db_path, cookie_backend, reload_hook
    ):
        first = _build_carrier(db_path, cookie_backend, reload_hook)
        first.sessions.login("admin", "pw")
        first.shutdown()

        second = _build_carrier(db_path, cookie_backend, reload_hook)
        try:
            second.sessions.now = lambda: utcnow() + timedelta(days=8)
            assert second.sessions.restore_credentials() is False
            assert second.repo.get_credentials() == []
        finally:
            second.shutdown()
