"""Task creation factory for Battle Plan.

This module centralizes task creation logic to eliminate duplication
and ensure consistent default values across the application.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from battleplan.models.task import Task, TaskCreate, TaskStatus


def generate_id() -> str:
    """Generate a new opaque task/entry identifier."""
    return uuid.uuid4().hex


def create_task_defaults() -> Dict[str, Any]:
    """Get default task values as a dictionary.

    Returns:
        Dictionary with default values for every optional Task field
    """
    return {
        "status": TaskStatus.INBOX,
        "tag": None,
        "next_action": None,
        "impact": None,
        "consequences": None,
        "friction": None,
        "leverage": None,
        "energy_match": None,
        "time_criticality": None,
        "estimate_bucket": None,
        "confidence": None,
        "actual_bucket": None,
        "scheduled_for_date": None,
        "due_date": None,
        "is_top3": False,
        "top3_order": None,
        "top3_date": None,
        "top3_locked": False,
        "recurrence": None,
        "recurrence_day": None,
        "parent_id": None,
        "started_at": None,
        "completed_at": None,
    }


def create_task_base(
    description: str,
    now: datetime,
    task_id: Optional[str] = None,
    **overrides: Any,
) -> Task:
    """Create a task with defaults, allowing overrides.

    Args:
        description: Free-text description (required)
        now: Timestamp used for created_at/updated_at
        task_id: Explicit id (a fresh one is generated when omitted)
        **overrides: Any Task field; None values fall back to the default

    Returns:
        Task object with defaults applied
    """
    fields = create_task_defaults()
    for key, value in overrides.items():
        if value is not None:
            fields[key] = value
    return Task(
        id=task_id or generate_id(),
        description=description.strip(),
        created_at=now,
        updated_at=now,
        **fields,
    )


def create_task_from_request(request: TaskCreate, now: datetime) -> Task:
    """Build a Task from a validated creation request."""
    data = request.model_dump()
    description = data.pop("description")
    return create_task_base(description, now, **data)
