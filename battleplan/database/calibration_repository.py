"""Repository for calibration history."""

import logging
from typing import List, Sequence

from sqlalchemy import desc
from sqlalchemy.orm import Session

from battleplan.models.calibration import CalibrationEntry
from battleplan.models.constants import CALIBRATION_WINDOW
from battleplan.database.models import CalibrationEntryDB

logger = logging.getLogger(__name__)


class CalibrationRepository:
    """Append-only store of estimate-vs-actual entries."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, entry: CalibrationEntry) -> CalibrationEntry:
        """Append an entry."""
        try:
            entry_db = CalibrationEntryDB.from_pydantic(entry)
            self.db.add(entry_db)
            self.db.commit()
            self.db.refresh(entry_db)
            logger.debug(
                f"Recorded calibration for {entry.tag}: {entry.estimate_bucket} -> {entry.actual_bucket} min"
            )
            return entry_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record calibration entry {entry.id}: {type(e).__name__}: {str(e)}")
            raise

    def get_recent(self, tag: str, limit: int = CALIBRATION_WINDOW) -> List[CalibrationEntry]:
        """Most recent entries for a tag, newest first."""
        entries_db = (
            self.db.query(CalibrationEntryDB)
            .filter(CalibrationEntryDB.tag == tag)
            .order_by(desc(CalibrationEntryDB.completed_at), desc(CalibrationEntryDB.id))
            .limit(limit)
            .all()
        )
        return [e.to_pydantic() for e in entries_db]

    def get_all(self) -> List[CalibrationEntry]:
        """Whole history, oldest first."""
        entries_db = self.db.query(CalibrationEntryDB).order_by(CalibrationEntryDB.completed_at).all()
        return [e.to_pydantic() for e in entries_db]

    def replace_all(self, entries: Sequence[CalibrationEntry], commit: bool = True) -> int:
        """Clear the history and bulk-write `entries`."""
        try:
            self.db.query(CalibrationEntryDB).delete(synchronize_session="fetch")
            self.db.add_all([CalibrationEntryDB.from_pydantic(e) for e in entries])
            if commit:
                self.db.commit()
            logger.debug(f"Replaced calibration history with {len(entries)} entries")
            return len(entries)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to replace calibration history: {type(e).__name__}: {str(e)}")
            raise
