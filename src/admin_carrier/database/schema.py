"""Database schema definition and initialization.

SCHEMA_VERSION stays at 1. New record families are added by creating any
missing table inside ``initialize_database``; additive changes never bump
the version.
"""

from admin_carrier.errors import SchemaError, SchemaVersionError

SCHEMA_VERSION = 1

# Record families every open store must contain
CONTENT = "content"
PENDING_REGISTRATIONS = "pending_registrations"
SETTINGS = "settings"
SESSION = "session"

RECORD_FAMILIES = (CONTENT, PENDING_REGISTRATIONS, SETTINGS, SESSION)

# Each statement is a separate string to avoid executescript issues
_SCHEMA_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY
    )""",

    # Content snapshot: one JSON value per key
    # (departments, courses, topics, premium_users, sync_info)
    """CREATE TABLE IF NOT EXISTS content (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )""",

    # Registrations collected offline, awaiting upload
    """CREATE TABLE IF NOT EXISTS pending_registrations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        code TEXT NOT NULL,
        department_id INTEGER,
        synced INTEGER NOT NULL DEFAULT 0 CHECK (synced IN (0, 1)),
        created_at TIMESTAMP NOT NULL,
        synced_at TIMESTAMP
    )""",

    """CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT
    )""",

    """CREATE TABLE IF NOT EXISTS session (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )""",

    # Indexes
    "CREATE INDEX IF NOT EXISTS idx_pending_synced "
    "ON pending_registrations(synced)",
    "CREATE INDEX IF NOT EXISTS idx_pending_code "
    "ON pending_registrations(code)",

    # synced only moves false -> true
    """CREATE TRIGGER IF NOT EXISTS prevent_pending_unsync
    BEFORE UPDATE OF synced ON pending_registrations
    WHEN OLD.synced = 1 AND NEW.synced = 0 BEGIN
        SELECT RAISE(ABORT, 'synced flag cannot be reversed');
    END""",
]


def _get_schema_version(conn) -> int:
    """Get the current schema version, or 0 if no schema exists."""
    try:
        row = conn.execute(
            "SELECT MAX(version) as v FROM schema_version"
        ).fetchone()
        return row["v"] if row and row["v"] else 0
    except Exception:
        return 0


def existing_families(conn) -> set[str]:
    """Names of the record families present in the open database."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table'"
    ).fetchall()
    return {row[0] for row in rows} & set(RECORD_FAMILIES)


def initialize_database(db_connection):
    """Create any missing record family and verify the result.

    Raises SchemaVersionError when the stored version is newer than
    SCHEMA_VERSION, and SchemaError when a family is still missing after
    creation. Any sqlite3.DatabaseError from a damaged file propagates.
    """
    with db_connection.get_connection() as conn:
        version = _get_schema_version(conn)
        if version > SCHEMA_VERSION:
            raise SchemaVersionError(version, SCHEMA_VERSION)

        for stmt in _SCHEMA_STATEMENTS:
            conn.execute(stmt)
        if version == 0:
            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )

        missing = set(RECORD_FAMILIES) - existing_families(conn)
        if missing:
            raise SchemaError(
                f"Missing record families: {', '.join(sorted(missing))}"
            )
