"""Store backup script — creates a timestamped copy of the carrier database."""

import sqlite3
import sys
from datetime import datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from admin_carrier.config import Config

MAX_BACKUPS = 10


def backup_database(db_path: Path | None = None,
                    backup_dir: Path | None = None) -> Path | None:
    """Copy the store to the backup directory using SQLite's backup API.

    Returns the backup file path, or None if there is no store yet.
    """
    db_path = Path(db_path or Config.DATABASE_PATH)
    backup_dir = Path(backup_dir or Config.BACKUP_PATH)
    backup_dir.mkdir(parents=True, exist_ok=True)

    if not db_path.exists():
        print(f"Database not found at {db_path}")
        return None

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup_file = backup_dir / f"admin_carrier_{timestamp}.db"
    src = sqlite3.connect(str(db_path))
    dst = sqlite3.connect(str(backup_file))
    try:
        src.backup(dst)
    finally:
        dst.close()
        src.close()
    print(f"Backup created: {backup_file}")

    # Keep only the most recent backups
    backups = sorted(backup_dir.glob("admin_carrier_*.db"), reverse=True)
    for old in backups[MAX_BACKUPS:]:
        old.unlink()
        print(f"Removed old backup: {old.name}")
    return backup_file


if __name__ == "__main__":
    backup_database()
