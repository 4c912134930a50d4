"""Next-occurrence date math for recurring tasks."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Optional

from battleplan.models.task import Recurrence, Task, TaskStatus
from battleplan.models.task_factory import create_task_base


def _sunday_based_weekday(d: date) -> int:
    # Python weekday: Monday=0 ... Sunday=6; recurrence_day uses Sunday=0 ... Saturday=6
    return (d.weekday() + 1) % 7


def next_occurrence(recurrence: Optional[str], recurrence_day: Optional[int], today: date) -> date:
    """Date of the next instance of a recurring task.

    - daily: tomorrow
    - weekly: the next day after today falling on `recurrence_day`
      (0=Sunday ... 6=Saturday); a target of today's weekday lands a week out
    - monthly: `recurrence_day` of next month, clamped to that month's last day
    - a missing `recurrence_day` means "same weekday / day-of-month as today"
    - any other rule: tomorrow
    """
    tomorrow = today + timedelta(days=1)

    if recurrence == Recurrence.WEEKLY:
        target = recurrence_day if recurrence_day is not None else _sunday_based_weekday(today)
        days_until = (target - _sunday_based_weekday(today)) % 7
        return today + timedelta(days=days_until or 7)

    if recurrence == Recurrence.MONTHLY:
        target = recurrence_day if recurrence_day is not None else today.day
        # Normalize to the 1st of next month before applying the day offset
        first_next = (today.replace(day=1) + timedelta(days=32)).replace(day=1)
        last_day = calendar.monthrange(first_next.year, first_next.month)[1]
        return first_next.replace(day=max(1, min(target, last_day)))

    return tomorrow


def build_next_instance(task: Task, today: date, now: datetime) -> Task:
    """Fresh copy of a recurring task for its next occurrence.

    Keeps description, tag, ratings, estimate and the recurrence rule; resets
    status to `next`, clears Top 3 and the due date, and schedules it on the
    next occurrence date.
    """
    return create_task_base(
        task.description,
        now,
        status=TaskStatus.NEXT,
        tag=task.tag,
        next_action=task.next_action,
        impact=task.impact,
        consequences=task.consequences,
        friction=task.friction,
        leverage=task.leverage,
        energy_match=task.energy_match,
        time_criticality=task.time_criticality,
        estimate_bucket=task.estimate_bucket,
        confidence=task.confidence,
        recurrence=task.recurrence,
        recurrence_day=task.recurrence_day,
        parent_id=task.parent_id,
        scheduled_for_date=next_occurrence(task.recurrence, task.recurrence_day, today),
    )
