"""Stack ranking logic for Battle Plan.

Sorts tasks by urgency tier, then by adjusted priority score within each
tier, then newest first. Used for every list view.
"""

from datetime import date
from typing import List

from battleplan.models.constants import RATED_SCORE_BOOST, URGENT_SCORE_BOOST
from battleplan.models.task import Task
from battleplan.engine.classification import is_rated
from battleplan.engine.scoring import is_urgent, priority_score
from battleplan.engine.tiering import assign_tier


def adjusted_priority_score(task: Task) -> int:
    """Priority score used for list ordering.

    Base priority (0 if it cannot be scored yet), +10 for urgent tasks so they
    surface before they are fully rated, +1 for fully rated tasks so they win
    ties against unrated ones.
    """
    score = priority_score(task) or 0
    if is_urgent(task):
        score += URGENT_SCORE_BOOST
    if is_rated(task):
        score += RATED_SCORE_BOOST
    return score


def stack_rank(tasks: List[Task], today: date) -> List[Task]:
    """Stack-rank tasks by tier and adjusted priority.

    Tasks are sorted:
    1. By tier (lowest tier number = highest priority)
    2. Within tier, by adjusted priority score (highest first)
    3. Newest created first
    4. By id, so the order is total

    This function is deterministic - same inputs always produce same outputs.

    Args:
        tasks: List of tasks to rank
        today: The current calendar day

    Returns:
        List of tasks sorted by priority (highest first)
    """
    # Stable sorts applied from the least to the most significant key
    ranked = sorted(tasks, key=lambda t: t.id)
    ranked.sort(key=lambda t: t.created_at, reverse=True)
    ranked.sort(key=lambda t: (assign_tier(t, today), -adjusted_priority_score(t)))
    return ranked
