"""Exception hierarchy shared by the store, the backend client and the responder."""


class CarrierError(Exception):
    """Base exception for carrier operations."""


# ── Remote backend ──────────────────────────────────────────────


class NetworkError(CarrierError):
    """Backend unreachable, timed out, or failed server-side."""


class AuthError(CarrierError):
    """Backend explicitly rejected the credentials or the session."""


class BackendError(CarrierError):
    """Backend answered with a non-auth error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(CarrierError):
    """A registration is missing a required field."""


# ── Local store ─────────────────────────────────────────────────


class StoreError(CarrierError):
    """Base exception for persistence-layer failures."""


class SchemaError(StoreError):
    """A required record family is missing after initialization."""


class SchemaVersionError(SchemaError):
    """The stored schema version is newer than this build understands."""

    def __init__(self, stored: int, expected: int):
        super().__init__(
            f"Stored schema version {stored} is newer than expected {expected}"
        )
        self.stored = stored
        self.expected = expected


class StoreBlocked(StoreError):
    """The store cannot be deleted while handles are still open."""


class StoreUnavailable(StoreError):
    """Recreating the store failed; only an emergency reset can help."""


# ── LAN responder ───────────────────────────────────────────────


class NotFound(CarrierError):
    """Requested resource is not in the cached snapshot."""
