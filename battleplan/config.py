"""Runtime configuration for Battle Plan.

Values come from the environment (optionally a `.env` file). User-facing
planning settings (capacity, slack, toggles) are NOT here; they live in the
`settings` collection, see `battleplan.models.settings`.
"""

import os
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


# Database URL - SQLite by default
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./battleplan.db")

# Calendar timezone used to decide what "today" is (host local time when unset)
TIMEZONE_NAME: Optional[str] = os.getenv("BATTLEPLAN_TIMEZONE") or None

# Auto-backup
BACKUP_ENABLED = _env_bool("BACKUP_ENABLED", "True")
BACKUP_DIR = os.getenv("BACKUP_DIR", "./backups")
BACKUP_DEBOUNCE_SEC = float(os.getenv("BACKUP_DEBOUNCE_SEC", "30"))
BACKUP_KEEP = int(os.getenv("BACKUP_KEEP", "3"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def local_now() -> datetime:
    """Current wall-clock time as a naive datetime in the configured timezone."""
    if TIMEZONE_NAME:
        return datetime.now(ZoneInfo(TIMEZONE_NAME)).replace(tzinfo=None)
    return datetime.now()
