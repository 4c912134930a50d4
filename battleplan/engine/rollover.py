"""Daily maintenance (rollover) planning for Battle Plan.

Pass 1, over every non-done task:
- count overdue tasks;
- protected promotion: due within a week, or scheduled on/before today, and
  not already `today` -> status today, scheduled today (ignores capacity);
- clear stale, unlocked Top-3 membership (when enabled);
- collect `tomorrow` tasks without a scheduled date as carryover candidates.

Pass 2, capacity-aware carryover: promote candidates by priority while their
buffered minutes fit what today's work has not already claimed. Candidates
without an estimate are promoted unconditionally.

The plan is computed against an in-memory copy, so running it twice on the
same day yields no further updates.
"""

from datetime import date, timedelta
from typing import Any, Callable, Dict, Optional, Sequence

from battleplan.models.constants import PROTECTED_DUE_WINDOW_DAYS
from battleplan.models.plans import MaintenancePlan
from battleplan.models.task import Task, TaskStatus
from battleplan.engine.classification import is_done, is_overdue, is_today_item
from battleplan.engine.scoring import priority_score

BufferedMinutes = Callable[[Task], Optional[int]]

CLEARED_TOP3_FIELDS = {"is_top3": False, "top3_order": None, "top3_date": None}


def _needs_protected_promotion(task: Task, today: date) -> bool:
    if task.status == TaskStatus.TODAY:
        return False
    if task.due_date is not None and task.due_date <= today + timedelta(days=PROTECTED_DUE_WINDOW_DAYS):
        return True
    return task.scheduled_for_date is not None and task.scheduled_for_date <= today


def _has_stale_top3(task: Task, today: date) -> bool:
    return bool(task.is_top3) and task.top3_date != today and not task.top3_locked


def plan_daily_maintenance(
    tasks: Sequence[Task],
    today: date,
    capacity: int,
    buffered: BufferedMinutes,
    auto_clear_top3: bool = True,
    auto_roll_tomorrow: bool = True,
) -> MaintenancePlan:
    """Compute the rollover's field updates and counts.

    Args:
        tasks: Every task in the store
        today: The current calendar day
        capacity: Usable capacity for today
        buffered: Buffered-minutes lookup for a task
        auto_clear_top3: Clear stale unlocked Top-3 membership
        auto_roll_tomorrow: Run the capacity-aware carryover of `tomorrow` tasks

    Returns:
        MaintenancePlan mapping task ids to the fields to write
    """
    plan = MaintenancePlan()
    counts = plan.result
    working: Dict[str, Task] = {}
    carryover = []

    def stage(task: Task, fields: Dict[str, Any]) -> Task:
        plan.updates.setdefault(task.id, {}).update(fields)
        updated = task.model_copy(update=fields)
        working[task.id] = updated
        return updated

    for task in tasks:
        if is_done(task):
            continue
        working[task.id] = task

        if is_overdue(task, today):
            counts.overdue_count += 1

        if _needs_protected_promotion(task, today):
            task = stage(task, {"status": TaskStatus.TODAY.value, "scheduled_for_date": today})
            counts.rolled_count += 1

        if auto_clear_top3 and _has_stale_top3(task, today):
            task = stage(task, dict(CLEARED_TOP3_FIELDS))
            counts.cleared_top3_count += 1

        if task.status == TaskStatus.TOMORROW and task.scheduled_for_date is None:
            carryover.append(task)

    if not auto_roll_tomorrow or not carryover:
        return plan

    committed = sum(
        buffered(t) or 0 for t in working.values() if is_today_item(t, today)
    )
    remaining = capacity - committed

    # Highest priority first; unrated tasks score 0
    for task in sorted(carryover, key=lambda t: -(priority_score(t) or 0)):
        minutes = buffered(task)
        if minutes is None:
            stage(task, {"status": TaskStatus.TODAY.value, "scheduled_for_date": today})
            continue
        if minutes <= remaining:
            stage(task, {"status": TaskStatus.TODAY.value, "scheduled_for_date": today})
            remaining -= minutes
        else:
            counts.deferred_count += 1

    return plan
