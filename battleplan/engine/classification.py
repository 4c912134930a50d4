"""Rating and classification predicates for Battle Plan.

All predicates are deterministic and take "today" explicitly where it matters.
"""

from datetime import date
from typing import Iterable, Optional

from battleplan.models.constants import (
    ACE_MAX,
    ACE_MIN,
    LMT_MAX,
    LMT_MIN,
    MONSTER_ESTIMATE_MINUTES,
)
from battleplan.models.task import Confidence, Task, TaskStatus

_CONFIDENCE_LEVELS = {c.value for c in Confidence}


def _in_range(value, low: int, high: int) -> bool:
    # bool is an int subclass; a stray True must not pass as a rating of 1
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return low <= value <= high


def is_rated(task: Task) -> bool:
    """Strict "fully rated" check.

    A, C, E in 1-5; L, M, T in 0-2 (0 is allowed); a positive estimate;
    and a valid confidence level. Partial ratings never count.
    """
    return (
        _in_range(task.impact, ACE_MIN, ACE_MAX)
        and _in_range(task.consequences, ACE_MIN, ACE_MAX)
        and _in_range(task.friction, ACE_MIN, ACE_MAX)
        and _in_range(task.leverage, LMT_MIN, LMT_MAX)
        and _in_range(task.energy_match, LMT_MIN, LMT_MAX)
        and _in_range(task.time_criticality, LMT_MIN, LMT_MAX)
        and _in_range(task.estimate_bucket, 1, float("inf"))
        and task.confidence in _CONFIDENCE_LEVELS
    )


def is_done(task: Task) -> bool:
    return task.status == TaskStatus.DONE


def is_monster(task: Task) -> bool:
    """Oversized (estimate >= 90 min) or low-confidence task."""
    if task.confidence == Confidence.LOW:
        return True
    return task.estimate_bucket is not None and task.estimate_bucket >= MONSTER_ESTIMATE_MINUTES


def effective_estimate(task: Task, subtasks: Iterable[Task] = ()) -> Optional[int]:
    """Own estimate plus every subtask's estimate (None when nothing is estimated)."""
    minutes = [t.estimate_bucket for t in [task, *subtasks] if t.estimate_bucket]
    return sum(minutes) if minutes else None


def is_monster_effective(task: Task, subtasks: Iterable[Task] = ()) -> bool:
    """Monster check that counts subtask time toward the 90-minute threshold."""
    if task.confidence == Confidence.LOW:
        return True
    total = effective_estimate(task, subtasks)
    return total is not None and total >= MONSTER_ESTIMATE_MINUTES


def is_overdue(task: Task, today: date) -> bool:
    """Scheduled for a day before today and not done."""
    if is_done(task) or task.scheduled_for_date is None:
        return False
    return task.scheduled_for_date < today


def is_today_item(task: Task, today: date) -> bool:
    """Top-level, not done, and either status today or scheduled on/before today."""
    if task.parent_id or is_done(task):
        return False
    if task.status == TaskStatus.TODAY:
        return True
    return task.scheduled_for_date is not None and task.scheduled_for_date <= today


def has_valid_top3(task: Task, today: date) -> bool:
    """Top-3 membership only counts on the day it names."""
    return bool(task.is_top3) and task.top3_date == today and not is_done(task)
