"""SyncManager — session-gated download/upload and sync status.

Downloads and uploads only run while a session is active. Every entry
point returns a status dict instead of raising so the operator always
gets a readable outcome:

    {"status": "not_logged_in"}
    {"status": "success", ...counts}
    {"status": "error", "reason": "..."}
"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from admin_carrier.sync.downloader import ContentSyncController
from admin_carrier.sync.uploader import RegistrationUploader

logger = logging.getLogger(__name__)


def humanize_since(timestamp: str | None, now: datetime | None = None) -> str:
    """Render a sync timestamp as 'Just now', 'N minutes ago', ..."""
    if not timestamp:
        return "Never"
    try:
        last = datetime.fromisoformat(str(timestamp).replace("Z", "+00:00"))
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        delta = (now or datetime.now(timezone.utc)) - last
        minutes = int(delta.total_seconds() / 60)
        if minutes < 1:
            return "Just now"
        elif minutes < 60:
            return f"{minutes} minutes ago"
        elif minutes < 1440:
            hours = minutes // 60
            return f"{hours} hours ago"
        else:
            days = minutes // 1440
            return f"{days} days ago"
    except (ValueError, TypeError):
        return "Unknown"


class SyncManager:
    """Operator-facing sync actions, gated on the session."""

    def __init__(self, repo, client, session_manager,
                 downloader: ContentSyncController | None = None,
                 uploader: RegistrationUploader | None = None):
        self.repo = repo
        self.sessions = session_manager
        self.downloader = downloader or ContentSyncController(repo, client)
        self.uploader = uploader or RegistrationUploader(repo, client)

    def download(self) -> dict:
        """Trigger a full content download."""
        if not self.sessions.is_logged_in():
            return {"status": "not_logged_in"}
        result = self.downloader.download_snapshot()
        if result.auth_failed:
            self.sessions.expire("backend rejected the session")
        if not result.success:
            return {"status": "error", "reason": result.error}
        return {"status": "success", **asdict(result)}

    def upload(self) -> dict:
        """Trigger an upload of every pending registration."""
        if not self.sessions.is_logged_in():
            return {"status": "not_logged_in"}
        result = self.uploader.upload_pending()
        if result.auth_failed:
            self.sessions.expire("backend rejected the session")
        if not result.success:
            return {"status": "error", "reason": result.error}
        summary = asdict(result)
        summary["error_count"] = result.error_count
        return {"status": "success", **summary}

    def get_sync_status(self) -> dict:
        """Current sync status for operator display."""
        snapshot = self.repo.get_all_content()
        last_sync = snapshot.sync_info.timestamp if snapshot.sync_info else None
        session = self.sessions.get_session()
        return {
            "logged_in": session is not None,
            "username": session.username if session else "",
            "last_sync": last_sync,
            "last_sync_human": humanize_since(last_sync),
            "departments": len(snapshot.departments),
            "courses": len(snapshot.courses),
            "topics": len(snapshot.topics),
            "premium_users": len(snapshot.premium_users),
            "pending_count": self.repo.count_registrations(synced=False),
            "synced_count": self.repo.count_registrations(synced=True),
            "retention": self.uploader.get_settings(),
        }
