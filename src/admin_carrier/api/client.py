"""HTTP client for the remote content backend."""

import logging

import httpx

from admin_carrier.config import Config
from admin_carrier.errors import AuthError, BackendError, NetworkError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login/"
LOGOUT_PATH = "/auth/logout/"
ME_PATH = "/auth/me/"
BULK_DOWNLOAD_PATH = "/api/admin/bulk-download/"
UPLOAD_USERS_PATH = "/admin/upload-users/"


def _error_message(response: httpx.Response) -> str | None:
    """Pull the backend's ``error`` field out of a JSON body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error") or body.get("detail")
    return None


class BackendClient:
    """Thin wrapper over httpx.Client with bounded timeouts.

    Session cookies set by the backend live on the underlying client and
    are the only credential. They can be exported for persistence and
    loaded back after a restart; ``clear_credentials`` drops them.
    """

    def __init__(self, base_url: str | None = None,
                 timeout: float | None = None,
                 transport: httpx.BaseTransport | None = None):
        self.base_url = (base_url or Config.BACKEND_URL).rstrip("/")
        self.timeout = Config.REQUEST_TIMEOUT if timeout is None else timeout
        self.client = httpx.Client(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(self.timeout),
            transport=transport,
        )

    def close(self):
        self.client.close()

    def clear_credentials(self):
        """Forget any session cookies held for the backend."""
        self.client.cookies.clear()

    def export_credentials(self) -> list[dict]:
        """Session cookies in a JSON-serializable form."""
        return [
            {"name": c.name, "value": c.value,
             "domain": c.domain, "path": c.path}
            for c in self.client.cookies.jar
        ]

    def load_credentials(self, cookies: list[dict]):
        """Restore cookies saved by ``export_credentials``."""
        for cookie in cookies:
            self.client.cookies.set(
                cookie["name"], cookie["value"],
                domain=cookie.get("domain") or "",
                path=cookie.get("path") or "/",
            )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthError(_error_message(response) or "Not authorized")
        if response.is_error:
            raise BackendError(
                _error_message(response)
                or f"Backend returned {response.status_code}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {path}") from e
        if not isinstance(body, dict):
            raise BackendError(f"Unexpected response body from {path}")
        return body

    # ── Auth ────────────────────────────────────────────────────

    def login(self, username: str, password: str) -> dict:
        return self._request(
            "POST", LOGIN_PATH,
            json={"username": username, "password": password},
        )

    def logout(self) -> dict:
        return self._request("POST", LOGOUT_PATH)

    def me(self) -> dict:
        return self._request("GET", ME_PATH)

    # ── Content & registrations ─────────────────────────────────

    def bulk_download(self) -> dict:
        return self._request("GET", BULK_DOWNLOAD_PATH)

    def upload_users(self, users: list[dict]) -> dict:
        return self._request("POST", UPLOAD_USERS_PATH, json={"users": users})
