"""ACE+LMT scoring for Battle Plan.

priority = (2A + 2C - E) + (L + M + T)

A task scores as soon as A, C and E are present (missing L/M/T count as 0),
even though it is not "rated" until every field is filled in.
"""

from enum import Enum
from typing import List, NamedTuple, Optional

from battleplan.models.task import Task
from battleplan.engine.classification import is_monster


class Badge(str, Enum):
    """Qualitative labels shown next to a task."""
    URGENT = "URGENT"
    CRITICAL = "CRITICAL"
    MONSTER = "MONSTER"
    LEVERAGE = "LEVERAGE"
    FRICTION = "FRICTION"


class TaskScores(NamedTuple):
    ace_score: Optional[int]
    lmt_bonus: Optional[int]
    priority_score: Optional[int]


NO_SCORES = TaskScores(None, None, None)


def calculate_score(task: Task) -> TaskScores:
    """Compute ACE score, LMT bonus and priority score.

    Returns all-None unless impact, consequences and friction are set.
    """
    if task.impact is None or task.consequences is None or task.friction is None:
        return NO_SCORES

    ace_score = (task.impact * 2) + (task.consequences * 2) - task.friction
    lmt_bonus = (task.leverage or 0) + (task.energy_match or 0) + (task.time_criticality or 0)
    return TaskScores(ace_score, lmt_bonus, ace_score + lmt_bonus)


def priority_score(task: Task) -> Optional[int]:
    return calculate_score(task).priority_score


def is_urgent(task: Task) -> bool:
    return task.consequences == 5


def calculate_badges(task: Task) -> List[Badge]:
    """Badges in display order: urgent, critical, monster, leverage, friction."""
    badges: List[Badge] = []

    if is_urgent(task):
        badges.append(Badge.URGENT)
    if task.impact == 5 and task.consequences is not None and task.consequences >= 4:
        badges.append(Badge.CRITICAL)
    if is_monster(task):
        badges.append(Badge.MONSTER)
    if task.leverage == 2:
        badges.append(Badge.LEVERAGE)
    if task.friction is not None and task.friction >= 4:
        badges.append(Badge.FRICTION)

    return badges
