"""Store cleanup and disaster recovery.

Handles forced deletion of the local store, full cleanup on logout,
and the operator-only emergency reset. A process reload is the final
fallback and is supplied as an explicit hook so callers (and tests)
decide what "reload" means.
"""

import logging
import os
import sys
import time
from typing import Callable

from admin_carrier.config import Config
from admin_carrier.database.store import LocalStore
from admin_carrier.errors import StoreBlocked

logger = logging.getLogger(__name__)


def reload_process():
    """Replace the running process with a fresh copy of itself."""
    logger.warning("Reloading process")
    os.execv(sys.executable, [sys.executable] + sys.argv)


class StoreCleanup:
    """Destructive maintenance operations over the carrier store."""

    def __init__(self, store: LocalStore, client=None,
                 reload: Callable[[], None] = reload_process,
                 reload_delay: float | None = None):
        self.store = store
        self.client = client
        self.reload = reload
        self.reload_delay = (
            Config.RELOAD_DELAY_SECONDS
            if reload_delay is None else reload_delay
        )
        # Callbacks that drop in-memory session state (tokens, flags)
        self._ephemeral_clearers: list[Callable[[], None]] = []

    def register_ephemeral(self, clearer: Callable[[], None]):
        """Register a callback that clears in-memory session state."""
        self._ephemeral_clearers.append(clearer)

    def _schedule_reload(self):
        time.sleep(self.reload_delay)
        self.reload()

    def force_delete(self) -> bool:
        """Delete the whole store.

        If deletion is blocked by an open handle, reloads after a short
        delay instead of retrying. Returns True if the store was deleted.
        """
        try:
            self.store.delete()
        except StoreBlocked as e:
            logger.warning("Store deletion blocked (%s); reloading", e)
            self._schedule_reload()
            return False
        logger.info("Store deleted: %s", self.store.db_path)
        return True

    def clear_ephemeral_state(self):
        for clearer in self._ephemeral_clearers:
            clearer()
        if self.client is not None:
            self.client.clear_credentials()

    def full_logout_cleanup(self) -> bool:
        """Clear session state and delete the store. Never raises."""
        try:
            self.clear_ephemeral_state()
            deleted = self.force_delete()
        except Exception:
            logger.exception("Logout cleanup failed; reloading")
            try:
                self.reload()
            except Exception:
                logger.exception("Reload after failed cleanup also failed")
            return False
        logger.info("Logout cleanup complete")
        return deleted

    def cleanup_on_version_mismatch(self) -> bool:
        """Delete the store and wait for the deletion to settle."""
        try:
            deleted = self.force_delete()
        except OSError:
            logger.exception("Version mismatch cleanup failed")
            return False
        time.sleep(self.store.recovery_delay)
        return deleted

    def emergency_reset(self, confirmed: bool, reconfirmed: bool) -> bool:
        """Wipe every kind of local state, then reload.

        Requires two separate confirmations from the operator; never
        called automatically.
        """
        if not (confirmed and reconfirmed):
            raise ValueError("Emergency reset requires double confirmation")

        logger.warning("EMERGENCY RESET INITIATED")
        try:
            Config.clear_runtime_settings()
            for clearer in self._ephemeral_clearers:
                clearer()
            self.force_delete()
        except Exception:
            logger.exception("Emergency reset failed; forcing reload")
            self.reload()
            return False

        if self.client is not None:
            try:
                self.client.clear_credentials()
            except Exception:
                logger.warning("Could not clear backend credentials")

        logger.warning("Emergency reset complete; reloading")
        self._schedule_reload()
        return True

    def database_exists(self) -> bool:
        return self.store.exists()

    def get_database_version(self) -> int:
        return self.store.get_version()
