"""Application entry point — wires the carrier services and serves the LAN."""

import logging
import sys
from pathlib import Path
from typing import Callable

from admin_carrier.api.client import BackendClient
from admin_carrier.auth.session import SessionManager
from admin_carrier.cleanup import StoreCleanup, reload_process
from admin_carrier.config import Config
from admin_carrier.database.repository import Repository
from admin_carrier.database.store import LocalStore
from admin_carrier.server.responder import LocalResponder
from admin_carrier.sync.sync_manager import SyncManager


def configure_logging(level: str | None = None):
    logging.basicConfig(
        level=(level or Config.LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class Carrier:
    """All carrier services built over one store and one backend client."""

    def __init__(self, db_path: str | Path | None = None,
                 client: BackendClient | None = None,
                 reload: Callable[[], None] = reload_process):
        self.store = LocalStore(db_path)
        self.repo = Repository(self.store)
        self.client = client or BackendClient()
        self.cleanup = StoreCleanup(self.store, self.client, reload=reload)
        self.sessions = SessionManager(self.repo, self.client, self.cleanup)
        self.sync = SyncManager(self.repo, self.client, self.sessions)
        self.responder = LocalResponder(self.repo)

    def start(self):
        """Open (and if needed heal) the store and resume any saved session."""
        self.store.open()
        self.sessions.restore_credentials()

    def shutdown(self, logging_out: bool = False):
        """Release resources; a logout in progress also wipes local state."""
        try:
            if logging_out:
                self.cleanup.full_logout_cleanup()
        finally:
            self.client.close()


def main():
    """Launch the carrier: open the store and serve peers on the LAN."""
    from admin_carrier.server.app import run_server

    configure_logging()
    carrier = Carrier()
    carrier.start()
    try:
        run_server(carrier.responder)
    finally:
        carrier.shutdown()
    sys.exit(0)


if __name__ == "__main__":
    main()
