"""Repository layer for task database operations."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from battleplan.models.task import Task
from battleplan.database.models import TaskDB, enum_to_value

logger = logging.getLogger(__name__)

# Columns that may be written through update_fields (id is immutable)
_UPDATABLE_COLUMNS = frozenset(c.name for c in TaskDB.__table__.columns) - {"id"}
_ENUM_COLUMNS = frozenset({"status", "tag", "confidence", "recurrence"})


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def _ordered(self, query):
        # Newest first; id keeps the order total when timestamps collide
        return query.order_by(desc(TaskDB.created_at), TaskDB.id)

    def create(self, task: Task) -> Task:
        """Create a new task."""
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.description[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        return task_db.to_pydantic() if task_db else None

    def get_all(self) -> List[Task]:
        """Get all tasks sorted by creation date (newest first)."""
        tasks_db = self._ordered(self.db.query(TaskDB)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_by_tag(self, tag: str) -> List[Task]:
        """Get all tasks carrying a category tag."""
        tasks_db = self._ordered(self.db.query(TaskDB).filter(TaskDB.tag == tag)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_children(self, parent_id: str) -> List[Task]:
        """Get the subtasks of a task."""
        tasks_db = self._ordered(self.db.query(TaskDB).filter(TaskDB.parent_id == parent_id)).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def search(self, query: str, status: Optional[str] = None) -> List[Task]:
        """Case-insensitive substring search over description and next action.

        Args:
            query: Text to look for
            status: Optional status filter

        Returns:
            Matching tasks, newest first
        """
        # LIKE wildcards in the query match literally
        escaped = query.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        q = self.db.query(TaskDB).filter(or_(
            TaskDB.description.ilike(pattern, escape="\\"),
            TaskDB.next_action.ilike(pattern, escape="\\"),
        ))
        if status:
            q = q.filter(TaskDB.status == status)
        return [task_db.to_pydantic() for task_db in self._ordered(q).all()]

    def put(self, task: Task) -> Task:
        """Insert or replace a task (all fields written)."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task.id).first()
        try:
            if task_db:
                task_db.apply(task)
            else:
                task_db = TaskDB.from_pydantic(task)
                self.db.add(task_db)
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Saved task {task.id}: {task.description[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def update_fields(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        """Write named fields of an existing task.

        Args:
            task_id: Task to update
            fields: Column name -> new value

        Returns:
            Updated Task, or None if the task does not exist

        Raises:
            ValueError: If a field name is not a task column
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown task fields: {sorted(unknown)}")

        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        if not task_db:
            return None

        for name, value in fields.items():
            setattr(task_db, name, enum_to_value(value) if name in _ENUM_COLUMNS else value)

        try:
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Updated task {task_id}: {sorted(fields)}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, task_id: str) -> bool:
        """Permanently delete a task by ID."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        if not task_db:
            return False

        try:
            self.db.delete(task_db)
            self.db.commit()
            logger.debug(f"Deleted task {task_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete task {task_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete_many(self, task_ids: Sequence[str]) -> int:
        """Permanently delete several tasks; returns how many rows went away."""
        if not task_ids:
            return 0
        try:
            affected = (
                self.db.query(TaskDB)
                .filter(TaskDB.id.in_(list(task_ids)))
                .delete(synchronize_session="fetch")
            )
            self.db.commit()
            logger.debug(f"Deleted {affected} tasks")
            return int(affected)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete {len(task_ids)} tasks: {type(e).__name__}: {str(e)}")
            raise

    def replace_all(self, tasks: Sequence[Task], commit: bool = True) -> int:
        """Clear the collection and bulk-write `tasks`.

        With commit=False the caller owns the transaction (see Storage.replace_everything).
        """
        try:
            self.db.query(TaskDB).delete(synchronize_session="fetch")
            self.db.add_all([TaskDB.from_pydantic(t) for t in tasks])
            if commit:
                self.db.commit()
            logger.debug(f"Replaced task collection with {len(tasks)} tasks")
            return len(tasks)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to replace tasks: {type(e).__name__}: {str(e)}")
            raise
