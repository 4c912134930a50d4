"""Storage handle bundling the repositories around one session."""

import logging
from typing import Any, Mapping, Sequence

from sqlalchemy.orm import Session

from battleplan.models.calibration import CalibrationEntry
from battleplan.models.routine import Routine
from battleplan.models.task import Task
from battleplan.database.calibration_repository import CalibrationRepository
from battleplan.database.repository import TaskRepository
from battleplan.database.routine_repository import RoutineRepository
from battleplan.database.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)


class Storage:
    """Injectable handle over the task, calibration, settings and routine collections."""

    def __init__(self, db: Session):
        self.db = db
        self.tasks = TaskRepository(db)
        self.calibration = CalibrationRepository(db)
        self.settings = SettingsRepository(db)
        self.routines = RoutineRepository(db)

    @classmethod
    def from_session(cls, db: Session) -> "Storage":
        return cls(db)

    def replace_everything(
        self,
        tasks: Sequence[Task],
        routines: Sequence[Routine],
        settings: Mapping[str, Any],
        calibration: Sequence[CalibrationEntry],
    ) -> None:
        """Clear and rewrite every collection in a single transaction."""
        try:
            self.tasks.replace_all(tasks, commit=False)
            self.routines.replace_all(routines, commit=False)
            self.settings.replace_all(settings, commit=False)
            self.calibration.replace_all(calibration, commit=False)
            self.db.commit()
            logger.debug(
                f"Replaced all collections: {len(tasks)} tasks, {len(routines)} routines, "
                f"{len(settings)} settings, {len(calibration)} calibration entries"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to replace collections: {type(e).__name__}: {str(e)}")
            raise
