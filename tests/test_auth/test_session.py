"""Tests for SessionManager: login, expiry, verification, logout."""

from datetime import timedelta

import httpx
import pytest

from admin_carrier.auth.session import (
    GENERIC_NETWORK_MESSAGE,
    SessionManager,
    SessionState,
)
from admin_carrier.errors import AuthError, NetworkError

LOGIN_OK = {"success": True, "username": "admin", "user_id": 1, "is_admin": True}


class TestLogin:
    def test_success_persists_session(self, sessions, backend, repo, clock):
        backend.set("/auth/login/", body=LOGIN_OK)
        session = sessions.login("admin", "secret")
        assert session.username == "admin"
        assert session.user_id == 1
        assert session.is_admin is True
        assert session.logged_in_at == clock()
        assert session.expires_at == clock() + timedelta(days=7)
        assert repo.get_session() == session
        assert sessions.state is SessionState.ACTIVE

    def test_sends_credentials(self, sessions, backend):
        backend.set("/auth/login/", body=LOGIN_OK)
        sessions.login("admin", "secret")
        request = backend.calls_to("/auth/login/")[0]
        assert request.method == "POST"
        assert b'"password"' in request.content

    def test_rejected_credentials(self, sessions, backend, repo):
        backend.set("/auth/login/", status=401, body={"error": "Invalid credentials"})
        with pytest.raises(AuthError, match="Invalid credentials"):
            sessions.login("admin", "wrong")
        assert repo.get_session() is None
        assert sessions.state is SessionState.NO_SESSION

    def test_success_false_is_auth_error(self, sessions, backend):
        backend.set("/auth/login/", body={"success": False, "error": "Account disabled"})
        with pytest.raises(AuthError, match="Account disabled"):
            sessions.login("admin", "secret")

    def test_bad_request_is_auth_error(self, sessions, backend):
        backend.set("/auth/login/", status=400, body={"error": "Missing username"})
        with pytest.raises(AuthError):
            sessions.login("", "secret")

    @pytest.mark.parametrize("exc", [httpx.ConnectTimeout, httpx.ConnectError])
    def test_network_failure_is_generic(self, sessions, backend, repo, exc):
        backend.fail("/auth/login/", exc)
        with pytest.raises(NetworkError) as info:
            sessions.login("admin", "secret")
        assert str(info.value) == GENERIC_NETWORK_MESSAGE
        assert repo.get_session() is None

    def test_non_object_body_is_generic(self, sessions, backend, repo):
        backend.set("/auth/login/", body=[])
        with pytest.raises(NetworkError):
            sessions.login("admin", "secret")
        assert repo.get_session() is None

    def test_server_error_is_generic(self, sessions, backend):
        backend.set("/auth/login/", status=502, body={"error": "Bad gateway"})
        with pytest.raises(NetworkError) as info:
            sessions.login("admin", "secret")
        assert str(info.value) == GENERIC_NETWORK_MESSAGE


class TestExpiry:
    def test_valid_until_exactly_seven_days(self, logged_in, clock):
        clock.advance(days=7)
        assert logged_in.get_session() is not None

    def test_absent_strictly_after_expiry(self, logged_in, clock, repo):
        clock.advance(days=7, microseconds=1)
        assert logged_in.get_session() is None
        # The stored record is gone, not just hidden
        assert repo.get_session() is None
        assert logged_in.state is SessionState.EXPIRED

    def test_no_session(self, sessions):
        assert sessions.get_session() is None
        assert sessions.is_logged_in() is False

    def test_corrupted_store_reads_as_no_session(self, logged_in, store):
        store.db_path.write_bytes(b"corrupted" * 100)
        assert logged_in.get_session() is None
        assert logged_in.is_logged_in() is False


class TestVerify:
    def test_authenticated_refreshes(self, logged_in, backend, clock, repo):
        clock.advance(days=3)
        backend.set("/auth/me/", body={
            "authenticated": True, "username": "admin", "user_id": 1, "is_admin": True,
        })
        assert logged_in.verify_session() is True
        session = repo.get_session()
        assert session.logged_in_at == clock()
        assert session.expires_at == clock() + timedelta(days=7)

    def test_creates_session_when_missing(self, sessions, backend, repo):
        backend.set("/auth/me/", body={
            "authenticated": True, "username": "admin", "user_id": 1, "is_admin": False,
        })
        assert sessions.verify_session() is True
        assert repo.get_session().username == "admin"

    @pytest.mark.parametrize("status", [401, 403])
    def test_unauthorized_clears_session(self, logged_in, backend, status):
        backend.set("/auth/me/", status=status, body={"error": "expired"})
        assert logged_in.verify_session() is False
        assert logged_in.get_session() is None

    def test_not_authenticated_clears_session(self, logged_in, backend):
        backend.set("/auth/me/", body={"authenticated": False})
        assert logged_in.verify_session() is False
        assert logged_in.get_session() is None

    def test_network_failure_defaults_to_invalid(self, logged_in, backend, repo):
        backend.fail("/auth/me/", httpx.ReadTimeout)
        assert logged_in.verify_session() is False
        # Conservative answer, but the record is only cleared on rejection
        assert repo.get_session() is not None

    def test_network_failure_trust_local_policy(self, repo, client, cleanup,
                                                clock, backend):
        manager = SessionManager(repo, client, cleanup, now=clock,
                                 offline_policy="trust_local")
        backend.set("/auth/login/", body=LOGIN_OK)
        manager.login("admin", "secret")
        backend.fail("/auth/me/", httpx.ConnectError)
        assert manager.verify_session() is True


class TestLogout:
    def test_logout_cleans_up(self, logged_in, backend, store, reload_hook):
        backend.set("/auth/logout/", body={})
        assert logged_in.logout() is True
        assert backend.calls_to("/auth/logout/")
        assert not store.exists()
        assert logged_in.state is SessionState.LOGGED_OUT
        reload_hook.assert_not_called()

    def test_logout_cleans_up_when_remote_fails(self, logged_in, backend, store):
        backend.fail("/auth/logout/", httpx.ConnectTimeout)
        logged_in.logout()
        assert not store.exists()
        assert logged_in.get_session() is None

    def test_logout_clears_cookies(self, logged_in, backend, client):
        client.client.cookies.set("sessionid", "abc")
        backend.set("/auth/logout/", status=500)
        logged_in.logout()
        assert "sessionid" not in client.client.cookies


def _login_with_cookie(backend):
    backend.on("/auth/login/", lambda request: httpx.Response(
        200, json=LOGIN_OK, headers={"Set-Cookie": "sessionid=abc; Path=/"},
    ))


class TestCredentials:
    def test_login_persists_cookies(self, sessions, backend, repo):
        _login_with_cookie(backend)
        sessions.login("admin", "secret")
        [cookie] = repo.get_credentials()
        assert (cookie["name"], cookie["value"]) == ("sessionid", "abc")

    def test_restore_loads_cookies(self, sessions, backend, client):
        _login_with_cookie(backend)
        sessions.login("admin", "secret")
        client.clear_credentials()

        assert sessions.restore_credentials() is True
        assert client.client.cookies.get("sessionid") == "abc"
        assert sessions.state is SessionState.ACTIVE

    def test_restore_without_session(self, sessions, client):
        assert sessions.restore_credentials() is False
        assert len(client.client.cookies) == 0

    def test_rejected_session_drops_cookies(self, sessions, backend, repo, client):
        _login_with_cookie(backend)
        sessions.login("admin", "secret")
        backend.set("/auth/me/", status=403, body={"detail": "expired"})

        assert sessions.verify_session() is False
        assert repo.get_credentials() == []
        assert "sessionid" not in client.client.cookies
