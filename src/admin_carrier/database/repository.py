"""Repository layer — reads and writes for the four record families."""

import json
from datetime import datetime
from typing import Optional

from .models import (
    ContentSnapshot,
    PendingRegistration,
    Session,
    SyncInfo,
    utcnow,
)
from .store import LocalStore

CONTENT_KEYS = ("departments", "courses", "topics", "premium_users")
SYNC_INFO_KEY = "sync_info"
SESSION_KEY = "session"
# Backend cookies backing the session, kept in the session family
CREDENTIALS_KEY = "credentials"


class Repository:
    """Provides all store operations for the application.

    Every public method runs through ``LocalStore.call()`` so a deleted
    or damaged file is recreated on the next access.
    """

    def __init__(self, store: LocalStore):
        self.store = store

    def _query(self, sql: str, params: tuple = ()):
        return self.store.call(lambda db: db.execute(sql, params))

    def _write(self, sql: str, params: tuple = ()) -> int:
        """Run one statement in its own transaction. Returns rowcount."""
        def run(db):
            with db.get_connection() as conn:
                return conn.execute(sql, params).rowcount
        return self.store.call(run)

    # ── Content snapshot ────────────────────────────────────────

    def save_content(self, snapshot: ContentSnapshot):
        """Replace the whole snapshot in one transaction."""
        values = {
            "departments": snapshot.departments,
            "courses": snapshot.courses,
            "topics": snapshot.topics,
            "premium_users": snapshot.premium_users,
            SYNC_INFO_KEY: (snapshot.sync_info or SyncInfo()).to_dict(),
        }
        rows = [(k, json.dumps(v)) for k, v in values.items()]

        def run(db):
            with db.get_connection() as conn:
                conn.execute("DELETE FROM content")
                conn.executemany(
                    "INSERT INTO content (key, value) VALUES (?, ?)", rows
                )
        self.store.call(run)

    def get_content(self, key: str):
        rows = self._query("SELECT value FROM content WHERE key = ?", (key,))
        return json.loads(rows[0]["value"]) if rows else None

    def get_all_content(self) -> ContentSnapshot:
        """Read the snapshot; without sync_info every collection is empty."""
        rows = self._query("SELECT key, value FROM content")
        stored = {r["key"]: json.loads(r["value"]) for r in rows}
        if not stored.get(SYNC_INFO_KEY):
            return ContentSnapshot()
        return ContentSnapshot(
            departments=stored.get("departments") or [],
            courses=stored.get("courses") or [],
            topics=stored.get("topics") or [],
            premium_users=stored.get("premium_users") or [],
            sync_info=SyncInfo.from_dict(stored[SYNC_INFO_KEY]),
        )

    def clear_content(self):
        self._write("DELETE FROM content")

    # ── Pending registrations ───────────────────────────────────

    def add_pending_registration(self, name: str, code: str,
                                 department_id: Optional[int] = None,
                                 created_at: Optional[datetime] = None) -> int:
        params = (name, code, department_id,
                  (created_at or utcnow()).isoformat())

        def run(db):
            with db.get_connection() as conn:
                cursor = conn.execute(
                    "INSERT INTO pending_registrations "
                    "(name, code, department_id, synced, created_at) "
                    "VALUES (?, ?, ?, 0, ?)",
                    params,
                )
                return cursor.lastrowid
        return self.store.call(run)

    def get_pending_registrations(self) -> list[PendingRegistration]:
        """Unsynced records, served by the idx_pending_synced index."""
        rows = self._query(
            "SELECT * FROM pending_registrations "
            "INDEXED BY idx_pending_synced WHERE synced = 0 ORDER BY id"
        )
        return [PendingRegistration.from_row(r) for r in rows]

    def get_registration(self, registration_id: int) -> Optional[PendingRegistration]:
        rows = self._query(
            "SELECT * FROM pending_registrations WHERE id = ?",
            (registration_id,),
        )
        return PendingRegistration.from_row(rows[0]) if rows else None

    def get_all_registrations(self) -> list[PendingRegistration]:
        rows = self._query("SELECT * FROM pending_registrations ORDER BY id")
        return [PendingRegistration.from_row(r) for r in rows]

    def count_registrations(self, synced: bool) -> int:
        rows = self._query(
            "SELECT COUNT(*) AS n FROM pending_registrations WHERE synced = ?",
            (1 if synced else 0,),
        )
        return rows[0]["n"]

    def mark_registrations_synced(self, registration_ids: list[int],
                                  synced_at: Optional[datetime] = None) -> int:
        """Flip synced for exactly these ids. Returns rows changed."""
        if not registration_ids:
            return 0
        stamp = (synced_at or utcnow()).isoformat()
        placeholders = ", ".join("?" for _ in registration_ids)
        return self._write(
            "UPDATE pending_registrations SET synced = 1, synced_at = ? "
            f"WHERE synced = 0 AND id IN ({placeholders})",
            (stamp, *registration_ids),
        )

    def delete_synced_registrations(self) -> int:
        return self._write("DELETE FROM pending_registrations WHERE synced = 1")

    def delete_synced_before(self, cutoff: datetime) -> int:
        """Delete synced records whose synced_at is older than cutoff."""
        return self._write(
            "DELETE FROM pending_registrations "
            "WHERE synced = 1 AND synced_at IS NOT NULL AND synced_at < ?",
            (cutoff.isoformat(),),
        )

    # ── Settings ────────────────────────────────────────────────

    def save_setting(self, key: str, value):
        self._write(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, json.dumps(value)),
        )

    def get_setting(self, key: str, default=None):
        rows = self._query("SELECT value FROM settings WHERE key = ?", (key,))
        return json.loads(rows[0]["value"]) if rows else default

    # ── Session ─────────────────────────────────────────────────

    def save_session(self, session: Session):
        self._write(
            "INSERT OR REPLACE INTO session (key, value) VALUES (?, ?)",
            (SESSION_KEY, json.dumps(session.to_dict())),
        )

    def get_session(self) -> Optional[Session]:
        """Stored session as-is; expiry is applied by the SessionManager."""
        rows = self._query(
            "SELECT value FROM session WHERE key = ?", (SESSION_KEY,)
        )
        return Session.from_dict(json.loads(rows[0]["value"])) if rows else None

    def save_credentials(self, cookies: list[dict]):
        """Persist the backend cookies that authenticate the session."""
        self._write(
            "INSERT OR REPLACE INTO session (key, value) VALUES (?, ?)",
            (CREDENTIALS_KEY, json.dumps(cookies)),
        )

    def get_credentials(self) -> list[dict]:
        rows = self._query(
            "SELECT value FROM session WHERE key = ?", (CREDENTIALS_KEY,)
        )
        return json.loads(rows[0]["value"]) if rows else []

    def delete_session(self):
        """Remove the session together with its backend credentials."""
        self._write("DELETE FROM session")

    # ── Maintenance ─────────────────────────────────────────────

    def clear_all_stores(self):
        """Empty every record family but keep the structure."""
        def run(db):
            with db.get_connection() as conn:
                for table in ("content", "pending_registrations",
                              "settings", "session"):
                    conn.execute(f"DELETE FROM {table}")
        self.store.call(run)
