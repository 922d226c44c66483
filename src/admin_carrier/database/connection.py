"""SQLite connection management with context manager."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path

from admin_carrier.errors import StoreBlocked

# Files SQLite may leave next to the main database file
_SIDECAR_SUFFIXES = ("-journal", "-wal", "-shm")


class DatabaseConnection:
    """Manages short-lived SQLite connections to the carrier store.

    Every ``get_connection()`` block is one transaction. Open blocks are
    counted so a delete can refuse to run underneath a live handle.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._open_handles = 0
        self._lock = threading.Lock()

    @property
    def open_handles(self) -> int:
        return self._open_handles

    @contextmanager
    def get_connection(self):
        """Yield a connection that auto-commits or rolls back."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        with self._lock:
            self._open_handles += 1
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
            with self._lock:
                self._open_handles -= 1

    def execute(self, sql: str, params: tuple = ()):
        """Run a single statement and return the fetched rows."""
        with self.get_connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.fetchall()

    def exists(self) -> bool:
        return self.db_path.exists()

    def destroy(self):
        """Delete the database file and its sidecars.

        Raises StoreBlocked if a connection is open or the OS refuses
        to remove a file.
        """
        if self._open_handles > 0:
            raise StoreBlocked(
                f"{self._open_handles} open handle(s) on {self.db_path.name}"
            )
        paths = [self.db_path] + [
            self.db_path.with_name(self.db_path.name + suffix)
            for suffix in _SIDECAR_SUFFIXES
        ]
        for path in paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except PermissionError as e:
                raise StoreBlocked(f"Cannot delete {path.name}: {e}") from e
