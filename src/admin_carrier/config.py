"""Application configuration — loads .env, then overrides from settings.json."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Find the project root (where .env lives)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Runtime settings file for in-app configuration
_SETTINGS_FILE = _PROJECT_ROOT / "data" / "settings.json"

VERIFY_POLICIES = ("invalid", "trust_local")


def _load_settings() -> dict:
    """Load saved runtime settings from JSON file."""
    if _SETTINGS_FILE.exists():
        try:
            return json.loads(_SETTINGS_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _save_settings(settings: dict):
    """Persist runtime settings to JSON file."""
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(
        json.dumps(settings, indent=2), encoding="utf-8"
    )


# Load saved settings once at import time
_runtime = _load_settings()


class Config:
    """Central configuration: .env defaults, settings.json overrides."""

    # Paths
    PROJECT_ROOT: Path = _PROJECT_ROOT
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "admin_carrier.db"))
    )
    BACKUP_PATH: Path = Path(
        os.getenv("DATABASE_BACKUP_PATH", str(_PROJECT_ROOT / "data" / "backups"))
    )

    # Remote backend (settings.json overrides .env)
    BACKEND_URL: str = _runtime.get(
        "backend_url",
        os.getenv("DJANGO_URL", "https://studycompanions-fzrm.onrender.com"),
    )
    REQUEST_TIMEOUT: float = float(_runtime.get(
        "request_timeout",
        os.getenv("REQUEST_TIMEOUT", "15"),
    ))

    # Session policy
    SESSION_TTL_DAYS: int = int(os.getenv("SESSION_TTL_DAYS", "7"))
    VERIFY_OFFLINE_POLICY: str = _runtime.get(
        "verify_offline_policy",
        os.getenv("VERIFY_OFFLINE_POLICY", "invalid"),
    )

    # Store recovery
    RECOVERY_DELAY_SECONDS: float = float(
        os.getenv("RECOVERY_DELAY_SECONDS", "0.3")
    )
    RELOAD_DELAY_SECONDS: float = float(
        os.getenv("RELOAD_DELAY_SECONDS", "1.0")
    )

    # LAN responder
    LAN_HOST: str = _runtime.get(
        "lan_host",
        os.getenv("LAN_HOST", "0.0.0.0"),
    )
    LAN_PORT: int = int(_runtime.get(
        "lan_port",
        os.getenv("LAN_PORT", "8080"),
    ))
    LAN_ADVERTISE_HOST: str = os.getenv("LAN_ADVERTISE_HOST", "")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def update_backend_settings(cls, backend_url: str, timeout: float):
        """Update backend connection settings at runtime and persist to disk."""
        cls.BACKEND_URL = backend_url
        cls.REQUEST_TIMEOUT = float(timeout)

        settings = _load_settings()
        settings["backend_url"] = backend_url
        settings["request_timeout"] = float(timeout)
        _save_settings(settings)

    @classmethod
    def update_verify_policy(cls, policy: str):
        """Choose how verification treats an unreachable backend."""
        if policy not in VERIFY_POLICIES:
            raise ValueError(
                f"Unknown verify policy {policy!r}; "
                f"expected one of {', '.join(VERIFY_POLICIES)}"
            )
        cls.VERIFY_OFFLINE_POLICY = policy
        settings = _load_settings()
        settings["verify_offline_policy"] = policy
        _save_settings(settings)

    @classmethod
    def update_lan_settings(cls, host: str, port: int):
        """Update the LAN responder bind address and persist."""
        cls.LAN_HOST = host
        cls.LAN_PORT = int(port)

        settings = _load_settings()
        settings["lan_host"] = host
        settings["lan_port"] = int(port)
        _save_settings(settings)

    @classmethod
    def clear_runtime_settings(cls) -> bool:
        """Delete settings.json. Returns True if a file was removed."""
        try:
            _SETTINGS_FILE.unlink()
            return True
        except FileNotFoundError:
            return False
