"""Rerack: recompute which remaining tasks still fit today.

Runs after a completion or under explicit time pressure. Protected tasks
(due, locked into the Top 3, or pinned by the caller) always stay and are
charged against capacity first. Flexible tasks compete for what is left by
value density, so short high-priority work wins when minutes are scarce.
"""

from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence

from battleplan.models.constants import (
    DENSITY_SHORT_TASK_BOOST,
    LOW_DENSITY_THRESHOLD,
    TOO_LONG_CAPACITY_SHARE,
)
from battleplan.models.plans import RerackEntry, RerackResult
from battleplan.models.task import Task
from battleplan.engine.classification import has_valid_top3, is_rated
from battleplan.engine.scoring import priority_score

BufferedMinutes = Callable[[Task], Optional[int]]

REASON_LOW_DENSITY = "low impact per minute"
REASON_TOO_LONG = "too long for remaining time"
REASON_NO_CAPACITY = "doesn't fit remaining capacity"
REASON_NO_TIME = "not enough time left today"


def value_density(score: int, minutes: int, short_task_boost: float = DENSITY_SHORT_TASK_BOOST) -> float:
    """Priority per minute with an extra boost for very short tasks.

    score / minutes x (1 + boost / minutes); falls back to the raw score
    when minutes is zero.
    """
    if minutes <= 0:
        return float(score)
    return (score / minutes) * (1 + short_task_boost / minutes)


def is_protected(task: Task, today: date, locked_ids: Iterable[str] = ()) -> bool:
    """Due today or earlier, locked into today's Top 3, or pinned by the caller."""
    if task.due_date is not None and task.due_date <= today:
        return True
    if has_valid_top3(task, today) and task.top3_locked:
        return True
    return task.id in set(locked_ids)


def overflow_reason(density: float, minutes: int, remaining: int, default_reason: str) -> str:
    if density < LOW_DENSITY_THRESHOLD:
        return REASON_LOW_DENSITY
    if minutes > remaining * TOO_LONG_CAPACITY_SHARE:
        return REASON_TOO_LONG
    return default_reason


def rerack(
    remaining_tasks: Sequence[Task],
    today: date,
    capacity: int,
    buffered: BufferedMinutes,
    locked_ids: Iterable[str] = (),
    exclude_id: Optional[str] = None,
    default_reason: str = REASON_NO_CAPACITY,
) -> RerackResult:
    """Split remaining work into keep / overflow / unrated.

    Args:
        remaining_tasks: Not-done, today-qualifying tasks
        today: The current calendar day
        capacity: Capacity ceiling for the rest of the day (negative is treated as 0)
        buffered: Buffered-minutes lookup for a task
        locked_ids: Extra task ids the caller wants protected
        exclude_id: Task to leave out entirely (e.g. the one just completed)
        default_reason: Overflow reason when neither density nor size explains it

    Returns:
        RerackResult; flexible kept minutes never exceed the ceiling, protected
        minutes may (flagged by protected_overflow)
    """
    ceiling = max(0, capacity)
    locked = set(locked_ids)
    result = RerackResult(capacity=ceiling)

    protected: List[RerackEntry] = []
    flexible: List[RerackEntry] = []
    for task in remaining_tasks:
        if task.id == exclude_id:
            continue
        if not is_rated(task):
            result.unrated.append(task)
            continue

        minutes = buffered(task) or 0
        score = priority_score(task) or 0
        entry = RerackEntry(
            task=task,
            buffered_minutes=minutes,
            priority_score=score,
            density=value_density(score, minutes),
            protected=is_protected(task, today, locked),
        )
        (protected if entry.protected else flexible).append(entry)

    result.protected_minutes = sum(e.buffered_minutes for e in protected)
    result.protected_overflow = result.protected_minutes > ceiling
    result.keep.extend(protected)

    remaining = ceiling - result.protected_minutes
    flexible_used = 0
    for entry in sorted(flexible, key=lambda e: -e.density):
        if entry.buffered_minutes <= remaining:
            result.keep.append(entry)
            remaining -= entry.buffered_minutes
            flexible_used += entry.buffered_minutes
        else:
            entry.reason = overflow_reason(entry.density, entry.buffered_minutes, remaining, default_reason)
            result.overflow.append(entry)

    result.used_minutes = result.protected_minutes + flexible_used
    result.remaining_minutes = max(0, remaining)
    return result
