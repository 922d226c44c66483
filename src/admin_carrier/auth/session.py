"""SessionManager — login, verification, expiry and logout.

States: NO_SESSION -> PENDING (login in flight) -> ACTIVE -> EXPIRED or
LOGGED_OUT. EXPIRED reads exactly like NO_SESSION.
"""

import enum
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Callable, Optional

from admin_carrier.config import Config
from admin_carrier.database.models import Session, utcnow
from admin_carrier.errors import (
    AuthError,
    BackendError,
    CarrierError,
    NetworkError,
    StoreError,
)

logger = logging.getLogger(__name__)

GENERIC_NETWORK_MESSAGE = "Network or server error"


class SessionState(enum.Enum):
    NO_SESSION = "no_session"
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    LOGGED_OUT = "logged_out"


class SessionManager:
    """Owns the single carrier session stored in the session family."""

    def __init__(self, repo, client, cleanup,
                 now: Callable[[], datetime] = utcnow,
                 ttl_days: int | None = None,
                 offline_policy: str | None = None):
        self.repo = repo
        self.client = client
        self.cleanup = cleanup
        self.now = now
        self.ttl = timedelta(
            days=Config.SESSION_TTL_DAYS if ttl_days is None else ttl_days
        )
        self.offline_policy = offline_policy or Config.VERIFY_OFFLINE_POLICY
        self.state = SessionState.NO_SESSION
        cleanup.register_ephemeral(self._reset_state)

    def _reset_state(self):
        self.state = SessionState.NO_SESSION

    def _start_session(self, payload: dict, fallback_username: str = "") -> Session:
        session = Session.start(
            username=payload.get("username") or fallback_username,
            user_id=payload.get("user_id"),
            is_admin=payload.get("is_admin", False),
            now=self.now(),
            ttl=self.ttl,
        )
        self.repo.save_session(session)
        self.repo.save_credentials(self.client.export_credentials())
        self.state = SessionState.ACTIVE
        return session

    def login(self, username: str, password: str) -> Session:
        """Authenticate against the backend and persist the session.

        Raises AuthError if the credentials are rejected, NetworkError
        if the backend cannot be reached in time.
        """
        self.state = SessionState.PENDING
        try:
            data = self.client.login(username, password)
        except AuthError:
            self.state = SessionState.NO_SESSION
            raise
        except BackendError as e:
            self.state = SessionState.NO_SESSION
            if e.status_code is not None and e.status_code < 500:
                raise AuthError(str(e)) from e
            logger.warning("Login failed: %s", e)
            raise NetworkError(GENERIC_NETWORK_MESSAGE) from e
        except NetworkError as e:
            self.state = SessionState.NO_SESSION
            logger.warning("Login failed: %s", e)
            raise NetworkError(GENERIC_NETWORK_MESSAGE) from e

        if not data.get("success"):
            self.state = SessionState.NO_SESSION
            raise AuthError(data.get("error") or "Invalid credentials")

        session = self._start_session(data, fallback_username=username)
        logger.info("Logged in as %s", session.username)
        return session

    def get_session(self) -> Optional[Session]:
        """Return the active session, or None. Never raises.

        A session read strictly after its expiry is deleted.
        """
        try:
            session = self.repo.get_session()
            if session is None:
                return None
            if session.is_expired(self.now()):
                logger.info("Session for %s expired", session.username)
                self.repo.delete_session()
                self.state = SessionState.EXPIRED
                return None
            return session
        except (StoreError, sqlite3.Error, ValueError, TypeError) as e:
            logger.error("Could not read session: %s", e)
            return None

    def is_logged_in(self) -> bool:
        return self.get_session() is not None

    def restore_credentials(self) -> bool:
        """Load the stored backend cookies into the client.

        Called at startup so a session that survived a restart can still
        talk to the backend. Returns True if a live session was restored.
        """
        session = self.get_session()
        if session is None:
            return False
        try:
            cookies = self.repo.get_credentials()
        except (StoreError, sqlite3.Error, ValueError) as e:
            logger.error("Could not read stored credentials: %s", e)
            return False
        self.client.load_credentials(cookies)
        self.state = SessionState.ACTIVE
        logger.info("Restored session for %s", session.username)
        return True

    def verify_session(self) -> bool:
        """Check the session with the backend and refresh it if valid."""
        try:
            data = self.client.me()
        except AuthError:
            self.expire("backend rejected the session")
            return False
        except CarrierError as e:
            logger.warning("Session verification unavailable: %s", e)
            if self.offline_policy == "trust_local":
                return self.get_session() is not None
            return False

        if not data.get("authenticated"):
            self.expire("backend reports not authenticated")
            return False

        previous = self.get_session()
        self._start_session(
            data, fallback_username=previous.username if previous else ""
        )
        return True

    def expire(self, reason: str):
        logger.info("Clearing session: %s", reason)
        try:
            self.repo.delete_session()
        except (StoreError, sqlite3.Error) as e:
            logger.error("Could not delete session: %s", e)
        self.client.clear_credentials()
        self.state = SessionState.EXPIRED

    def logout(self) -> bool:
        """Best-effort remote logout, then unconditional local cleanup."""
        try:
            self.client.logout()
        except CarrierError as e:
            logger.warning("Remote logout failed (ignored): %s", e)
        cleaned = self.cleanup.full_logout_cleanup()
        self.state = SessionState.LOGGED_OUT
        return cleaned
