"""Repository for routines (reusable checklists)."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from battleplan.models.routine import Routine
from battleplan.database.models import RoutineDB

logger = logging.getLogger(__name__)


class RoutineRepository:
    """Repository for Routine database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, routine: Routine) -> Routine:
        """Create a new routine."""
        try:
            routine_db = RoutineDB.from_pydantic(routine)
            self.db.add(routine_db)
            self.db.commit()
            self.db.refresh(routine_db)
            logger.debug(f"Created routine {routine.id}: {routine.name[:50]}")
            return routine_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create routine {routine.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, routine_id: str) -> Optional[Routine]:
        """Get routine by ID."""
        routine_db = self.db.query(RoutineDB).filter(RoutineDB.id == routine_id).first()
        return routine_db.to_pydantic() if routine_db else None

    def get_all(self) -> List[Routine]:
        """All routines, oldest first."""
        routines_db = self.db.query(RoutineDB).order_by(RoutineDB.created_at, RoutineDB.id).all()
        return [r.to_pydantic() for r in routines_db]

    def update(self, routine: Routine) -> Optional[Routine]:
        """Overwrite name and items of an existing routine."""
        routine_db = self.db.query(RoutineDB).filter(RoutineDB.id == routine.id).first()
        if not routine_db:
            return None

        routine_db.name = routine.name
        routine_db.items = [item.model_dump(mode="json") for item in routine.items]
        try:
            self.db.commit()
            self.db.refresh(routine_db)
            logger.debug(f"Updated routine {routine.id}: {routine.name[:50]}")
            return routine_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update routine {routine.id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, routine_id: str) -> bool:
        """Delete a routine by ID."""
        routine_db = self.db.query(RoutineDB).filter(RoutineDB.id == routine_id).first()
        if not routine_db:
            return False

        try:
            self.db.delete(routine_db)
            self.db.commit()
            logger.debug(f"Deleted routine {routine_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete routine {routine_id}: {type(e).__name__}: {str(e)}")
            raise

    def replace_all(self, routines: Sequence[Routine], commit: bool = True) -> int:
        """Clear the collection and bulk-write `routines`."""
        try:
            self.db.query(RoutineDB).delete(synchronize_session="fetch")
            self.db.add_all([RoutineDB.from_pydantic(r) for r in routines])
            if commit:
                self.db.commit()
            logger.debug(f"Replaced routines with {len(routines)} routines")
            return len(routines)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to replace routines: {type(e).__name__}: {str(e)}")
            raise
