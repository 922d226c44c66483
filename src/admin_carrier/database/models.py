"""Data models for the database layer."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

SESSION_TTL = timedelta(days=7)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Session:
    username: str = ""
    user_id: Optional[int] = None
    is_admin: bool = False
    logged_in_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def start(cls, username: str, user_id, is_admin: bool,
              now: datetime, ttl: timedelta = SESSION_TTL) -> "Session":
        """Create a session that expires ``ttl`` after ``now``."""
        return cls(
            username=username,
            user_id=user_id,
            is_admin=bool(is_admin),
            logged_in_at=now,
            expires_at=now + ttl,
        )

    def is_expired(self, now: datetime) -> bool:
        """True strictly after expires_at."""
        return self.expires_at is None or now > self.expires_at

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "user_id": self.user_id,
            "is_admin": self.is_admin,
            "logged_in_at": self.logged_in_at.isoformat()
            if self.logged_in_at else None,
            "expires_at": self.expires_at.isoformat()
            if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            username=data.get("username", ""),
            user_id=data.get("user_id"),
            is_admin=bool(data.get("is_admin", False)),
            logged_in_at=_parse_dt(data.get("logged_in_at")),
            expires_at=_parse_dt(data.get("expires_at")),
        )


@dataclass
class SyncInfo:
    timestamp: Optional[str] = None
    total_topics: int = 0
    total_users: int = 0

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "total_topics": self.total_topics,
            "total_users": self.total_users,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncInfo":
        return cls(
            timestamp=data.get("timestamp"),
            total_topics=data.get("total_topics") or 0,
            total_users=data.get("total_users") or 0,
        )


@dataclass
class ContentSnapshot:
    departments: list = field(default_factory=list)
    courses: list = field(default_factory=list)
    topics: list = field(default_factory=list)
    premium_users: list = field(default_factory=list)
    sync_info: Optional[SyncInfo] = None

    @property
    def is_empty(self) -> bool:
        return self.sync_info is None

    @classmethod
    def from_bulk_download(cls, data: dict) -> "ContentSnapshot":
        """Build a snapshot from the backend's bulk-download payload.

        Raises KeyError if a collection is missing.
        """
        return cls(
            departments=list(data["departments"]),
            courses=list(data["courses"]),
            topics=list(data["topics"]),
            premium_users=list(data["premium_users"]),
            sync_info=SyncInfo(
                timestamp=data.get("sync_timestamp"),
                total_topics=data.get("total_topics") or 0,
                total_users=data.get("total_users") or 0,
            ),
        )


@dataclass
class PendingRegistration:
    id: Optional[int] = None
    name: str = ""
    code: str = ""
    department_id: Optional[int] = None
    synced: bool = False
    created_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "PendingRegistration":
        return cls(
            id=row["id"],
            name=row["name"],
            code=row["code"],
            department_id=row["department_id"],
            synced=bool(row["synced"]),
            created_at=_parse_dt(row["created_at"]),
            synced_at=_parse_dt(row["synced_at"]),
        )

    def to_upload_payload(self) -> dict:
        """Shape expected by the backend's upload-users endpoint."""
        return {
            "name": self.name,
            "code": self.code,
            "department_id": self.department_id or None,
        }


@dataclass
class SyncResult:
    success: bool = False
    departments: int = 0
    courses: int = 0
    topics: int = 0
    users: int = 0
    timestamp: Optional[str] = None
    error: str = ""
    auth_failed: bool = False


@dataclass
class UploadResult:
    success: bool = False
    created: int = 0
    duplicates: int = 0
    errors: list = field(default_factory=list)
    uploaded_ids: list[int] = field(default_factory=list)
    message: str = ""
    error: str = ""
    auth_failed: bool = False

    @property
    def error_count(self) -> int:
        return len(self.errors)
