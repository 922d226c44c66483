"""LocalStore — opens the carrier store and heals it when it is damaged.

Three failure classes trigger recovery:
1. the stored schema version is newer than SCHEMA_VERSION
2. a record family is still missing after creation
3. opening or querying the file fails outright, at open time or later
   through ``call()``

Recovery deletes the whole store, waits a bounded delay, and recreates
every family. If recreation fails too, StoreUnavailable is raised and
only an operator-initiated emergency reset can help.
"""

import logging
import sqlite3
import time
from pathlib import Path
from typing import Callable, TypeVar

from admin_carrier.config import Config
from admin_carrier.database.connection import DatabaseConnection
from admin_carrier.database.schema import (
    _get_schema_version,
    initialize_database,
)
from admin_carrier.errors import SchemaError, StoreError, StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# OperationalError messages that mean "busy", not "damaged"
_TRANSIENT_MARKERS = ("locked", "busy")


def is_damage(error: sqlite3.DatabaseError) -> bool:
    """True if the error points at a damaged or missing store file."""
    if isinstance(error, (sqlite3.IntegrityError, sqlite3.ProgrammingError)):
        return False
    if isinstance(error, sqlite3.OperationalError):
        message = str(error).lower()
        return not any(marker in message for marker in _TRANSIENT_MARKERS)
    return True


class LocalStore:
    """Versioned SQLite store holding the four carrier record families."""

    def __init__(self, db_path: str | Path | None = None,
                 recovery_delay: float | None = None):
        self.db = DatabaseConnection(db_path or Config.DATABASE_PATH)
        self.recovery_delay = (
            Config.RECOVERY_DELAY_SECONDS
            if recovery_delay is None else recovery_delay
        )
        self._ready = False

    @property
    def db_path(self) -> Path:
        return self.db.db_path

    def open(self) -> DatabaseConnection:
        """Return a ready connection manager, creating or healing the store.

        Idempotent: once the store is verified, later calls return
        immediately until the file is deleted.
        """
        if self._ready and self.db.exists():
            return self.db

        try:
            initialize_database(self.db)
        except (SchemaError, sqlite3.DatabaseError) as e:
            logger.warning("Store at %s is unusable (%s); recreating",
                           self.db_path, e)
            self._recover()
        self._ready = True
        return self.db

    def call(self, operation: Callable[[DatabaseConnection], T]) -> T:
        """Run ``operation`` against the open store.

        If the file turns out to be damaged mid-run, the store is
        recreated and the operation retried once.
        """
        db = self.open()
        try:
            return operation(db)
        except sqlite3.DatabaseError as e:
            if not is_damage(e):
                raise
            logger.warning("Store at %s failed during use (%s); recreating",
                           self.db_path, e)
            self._ready = False
            self._recover()
            self._ready = True
        return operation(self.db)

    def _recover(self):
        """Delete and recreate the store from scratch."""
        try:
            self.db.destroy()
        except StoreError as e:
            logger.error("Could not delete damaged store: %s", e)
        # Deletion has no reliable completion signal; wait a bounded delay
        time.sleep(self.recovery_delay)
        try:
            initialize_database(self.db)
        except (SchemaError, sqlite3.Error, OSError) as e:
            logger.critical("Store recreation failed: %s", e)
            raise StoreUnavailable(
                "The local database could not be recreated. "
                "Run an emergency reset to clear all local data."
            ) from e
        logger.info("Store recreated at %s", self.db_path)

    def delete(self):
        """Delete the persisted store. Raises StoreBlocked if in use."""
        self._ready = False
        self.db.destroy()

    def exists(self) -> bool:
        return self.db.exists()

    def get_version(self) -> int:
        """Schema version of the store on disk, or 0 if there is none."""
        if not self.db.exists():
            return 0
        try:
            with self.db.get_connection() as conn:
                return _get_schema_version(conn)
        except sqlite3.Error:
            return 0
