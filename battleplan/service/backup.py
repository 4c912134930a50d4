"""Debounced auto-backup for Battle Plan.

Every mutation calls `touch()`, which cancels the pending timer and starts a
new one on the running event loop. When the data has been quiet for `delay`
seconds a full snapshot is written to `backup_dir` in a worker thread and
only the newest `keep` files are retained. Backups are best effort: failures
are logged and never reach the caller.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from battleplan.config import BACKUP_DEBOUNCE_SEC, BACKUP_KEEP, local_now
from battleplan.database.storage import Storage
from battleplan.service.transfer import export_snapshot

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "battleplan-backup-"


def backup_filename(now: datetime) -> str:
    # Lexicographic order equals chronological order
    return f"{BACKUP_PREFIX}{now.strftime('%Y%m%d-%H%M%S-%f')}.json"


class AutoBackup:
    """Cancel-and-reschedule snapshot writer."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        backup_dir: str,
        delay: float = BACKUP_DEBOUNCE_SEC,
        keep: int = BACKUP_KEEP,
        now: Callable[[], datetime] = local_now,
    ):
        self.session_factory = session_factory
        self.backup_dir = Path(backup_dir)
        self.delay = delay
        self.keep = keep
        self._now = now
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def touch(self) -> None:
        """Restart the quiet-period timer.

        Outside a running event loop (scripts, sync tests) this does nothing.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; auto-backup not scheduled")
            return

        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        asyncio.get_running_loop().run_in_executor(None, self.run_now)

    def run_now(self) -> Optional[Path]:
        """Write one snapshot and prune old ones.

        Returns:
            Path of the new backup, or None if it failed
        """
        try:
            db = self.session_factory()
            try:
                snapshot = export_snapshot(Storage(db), self._now())
            finally:
                db.close()

            self.backup_dir.mkdir(parents=True, exist_ok=True)
            path = self.backup_dir / backup_filename(self._now())
            with open(path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, ensure_ascii=False, indent=2)
            removed = self.prune()
            logger.info(f"Wrote backup {path.name} ({len(snapshot['items'])} tasks, {len(removed)} old removed)")
            return path
        except Exception as e:
            logger.warning(f"Auto-backup failed: {type(e).__name__}: {str(e)}")
            return None

    def backups(self) -> List[Path]:
        """Existing backup files, oldest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(f"{BACKUP_PREFIX}*.json"))

    def prune(self) -> List[Path]:
        """Delete all but the newest `keep` backups; returns what was removed."""
        files = self.backups()
        doomed = files[:-self.keep] if self.keep > 0 else files
        for path in doomed:
            path.unlink()
        return doomed
