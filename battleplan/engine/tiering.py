"""Urgency tier assignment for Battle Plan.

Implements the fixed urgency hierarchy used by every list view.
Each task has exactly one governing tier at any moment.
"""

from datetime import date, timedelta

from battleplan.models.constants import DUE_SOON_DAYS
from battleplan.models.task import Task
from battleplan.engine.classification import is_overdue


# Fixed urgency tier hierarchy (highest to lowest)
TIER_OVERDUE_SCHEDULED = 0
TIER_DUE_TODAY = 1
TIER_DUE_TOMORROW = 2
TIER_DUE_SOON = 3
TIER_BACKLOG = 4


def assign_tier(task: Task, today: date) -> int:
    """Assign an urgency tier to a task.

    The task is assigned to the HIGHEST applicable tier. Tier 0 looks at the
    scheduled date; tiers 1-3 look at the due date only, so a task can be
    tier 0 without having a due date at all.

    This function is deterministic - same inputs always produce same outputs.

    Args:
        task: The task to assign a tier to
        today: The current calendar day

    Returns:
        Tier number (0-4, where 0 is highest priority)
    """
    # Tier 0: scheduled for an earlier day and still not done
    if is_overdue(task, today):
        return TIER_OVERDUE_SCHEDULED

    due = task.due_date
    if due is None:
        return TIER_BACKLOG

    # Tier 1: due today or already past due
    if due <= today:
        return TIER_DUE_TODAY

    # Tier 2: due tomorrow
    if due <= today + timedelta(days=1):
        return TIER_DUE_TOMORROW

    # Tier 3: due within the next few days
    if due <= today + timedelta(days=DUE_SOON_DAYS):
        return TIER_DUE_SOON

    return TIER_BACKLOG


def get_tier_name(tier: int) -> str:
    """Get human-readable name for a tier.

    Args:
        tier: Tier number (0-4)

    Returns:
        Tier name string
    """
    tier_names = {
        0: "Overdue",
        1: "Due Today",
        2: "Due Tomorrow",
        3: "Due Soon",
        4: "Backlog",
    }
    return tier_names.get(tier, "Unknown")
