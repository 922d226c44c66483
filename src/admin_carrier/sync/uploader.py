"""Registration queue and bulk uploader.

Registrations collected while offline are queued with synced=0. An
upload sends every unsynced record in one call and, on success, marks
only the ids that were in that payload as synced. Anything enqueued
while the call is in flight stays unsynced for the next upload.
"""

import logging
from datetime import timedelta

from admin_carrier.database.models import PendingRegistration, UploadResult, utcnow
from admin_carrier.errors import AuthError, BackendError, CarrierError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_ERROR = "Failed to upload users"

# Retention settings stored in the settings family
AUTO_DELETE_KEY = "auto_delete"
DELETE_AFTER_DAYS_KEY = "delete_after_days"
DEFAULT_DELETE_AFTER_DAYS = 7


def _as_count(value) -> int:
    """Backend counts arrive either as ints or as lists of records."""
    if isinstance(value, (list, tuple)):
        return len(value)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_errors(value) -> list:
    """Per-record rejections; an int count carries no detail."""
    return list(value) if isinstance(value, list) else []


class RegistrationUploader:
    """Queues registrations locally and pushes them to the backend."""

    def __init__(self, repo, client, now=utcnow):
        self.repo = repo
        self.client = client
        self.now = now

    # ── Queue ───────────────────────────────────────────────────

    def enqueue(self, name: str, code: str, department_id: int | None = None) -> int:
        """Insert a new unsynced registration. Returns its id."""
        name = (name or "").strip()
        code = (code or "").strip()
        if not name or not code:
            raise ValidationError("Registration requires a name and a code")
        return self.repo.add_pending_registration(
            name, code, department_id, created_at=self.now()
        )

    def list_unsynced(self) -> list[PendingRegistration]:
        return self.repo.get_pending_registrations()

    def pending_count(self) -> int:
        return self.repo.count_registrations(synced=False)

    # ── Upload ──────────────────────────────────────────────────

    def upload_pending(self) -> UploadResult:
        """Upload every unsynced registration in one bulk call."""
        pending = self.list_unsynced()
        if not pending:
            return UploadResult(
                success=True, message="No pending users to upload"
            )

        # Only these ids may be marked synced once the backend answers
        payload_ids = [r.id for r in pending]
        users = [r.to_upload_payload() for r in pending]

        try:
            data = self.client.upload_users(users)
        except AuthError as e:
            logger.error("Upload not authorized: %s", e)
            return UploadResult(success=False, error=str(e), auth_failed=True)
        except BackendError as e:
            logger.error("Upload rejected: %s", e)
            return UploadResult(success=False, error=str(e) or DEFAULT_UPLOAD_ERROR)
        except CarrierError as e:
            logger.error("Upload failed: %s", e)
            return UploadResult(success=False, error=DEFAULT_UPLOAD_ERROR)

        if not data.get("success"):
            return UploadResult(
                success=False, error=data.get("error") or "Upload failed"
            )

        self.repo.mark_registrations_synced(payload_ids, synced_at=self.now())
        result = UploadResult(
            success=True,
            created=_as_count(data.get("created")),
            duplicates=_as_count(data.get("duplicates")),
            errors=_as_errors(data.get("errors")),
            uploaded_ids=payload_ids,
        )
        logger.info(
            "Uploaded %d registrations: %d created, %d duplicates, %d errors",
            len(payload_ids), result.created, result.duplicates,
            result.error_count,
        )
        return result

    # ── Cleanup of synced records ───────────────────────────────

    def delete_synced_records(self) -> int:
        """Permanently delete every synced record. Unsynced ones stay."""
        deleted = self.repo.delete_synced_registrations()
        logger.info("Deleted %d synced registrations", deleted)
        return deleted

    def get_settings(self) -> dict:
        return {
            AUTO_DELETE_KEY: bool(self.repo.get_setting(AUTO_DELETE_KEY, False)),
            DELETE_AFTER_DAYS_KEY: int(self.repo.get_setting(
                DELETE_AFTER_DAYS_KEY, DEFAULT_DELETE_AFTER_DAYS
            )),
        }

    def update_settings(self, auto_delete: bool, delete_after_days: int):
        if int(delete_after_days) < 1:
            raise ValueError("delete_after_days must be at least 1")
        self.repo.save_setting(AUTO_DELETE_KEY, bool(auto_delete))
        self.repo.save_setting(DELETE_AFTER_DAYS_KEY, int(delete_after_days))

    def purge_expired_synced(self) -> int:
        """Apply the retention settings; run only on operator request.

        Returns the number of records deleted (0 when auto-delete is off).
        """
        settings = self.get_settings()
        if not settings[AUTO_DELETE_KEY]:
            return 0
        cutoff = self.now() - timedelta(days=settings[DELETE_AFTER_DAYS_KEY])
        deleted = self.repo.delete_synced_before(cutoff)
        logger.info("Purged %d synced registrations older than %s",
                    deleted, cutoff.isoformat())
        return deleted
