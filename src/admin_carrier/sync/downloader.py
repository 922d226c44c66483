"""Content download — replaces the local snapshot with the backend's."""

import logging

from admin_carrier.database.models import ContentSnapshot, SyncResult
from admin_carrier.errors import AuthError, BackendError, CarrierError

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_ERROR = "Failed to download content"


class ContentSyncController:
    """Fetches the full content snapshot and stores it wholesale."""

    def __init__(self, repo, client):
        self.repo = repo
        self.client = client

    def download_snapshot(self) -> SyncResult:
        """Download and atomically replace the stored snapshot.

        On any failure the existing snapshot is left untouched.
        """
        try:
            data = self.client.bulk_download()
        except AuthError as e:
            logger.error("Download not authorized: %s", e)
            return SyncResult(success=False, error=str(e), auth_failed=True)
        except BackendError as e:
            logger.error("Download rejected: %s", e)
            return SyncResult(success=False, error=str(e) or DEFAULT_DOWNLOAD_ERROR)
        except CarrierError as e:
            logger.error("Download failed: %s", e)
            return SyncResult(success=False, error=DEFAULT_DOWNLOAD_ERROR)

        try:
            snapshot = ContentSnapshot.from_bulk_download(data)
        except (KeyError, TypeError) as e:
            logger.error("Malformed bulk download payload: missing %s", e)
            return SyncResult(success=False, error=DEFAULT_DOWNLOAD_ERROR)

        self.repo.save_content(snapshot)

        result = SyncResult(
            success=True,
            departments=len(snapshot.departments),
            courses=len(snapshot.courses),
            topics=len(snapshot.topics),
            users=len(snapshot.premium_users),
            timestamp=snapshot.sync_info.timestamp,
        )
        logger.info(
            "Downloaded %d departments, %d courses, %d topics, %d users",
            result.departments, result.courses, result.topics, result.users,
        )
        return result
