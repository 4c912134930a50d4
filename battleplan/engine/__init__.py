"""Prioritization and capacity engine for Battle Plan."""

from battleplan.engine.scoring import calculate_score, calculate_badges, Badge, TaskScores
from battleplan.engine.classification import is_rated, is_monster, is_monster_effective, is_overdue, is_today_item
from battleplan.engine.calibration import calibration_factor, buffered_minutes
from battleplan.engine.capacity import usable_capacity, remaining_day_minutes
from battleplan.engine.tiering import assign_tier, get_tier_name
from battleplan.engine.ranking import stack_rank, adjusted_priority_score
from battleplan.engine.top3 import suggest_top3, check_top3_admission, top3_stats
from battleplan.engine.rerack import rerack, value_density
from battleplan.engine.rollover import plan_daily_maintenance

__all__ = [
    "calculate_score",
    "calculate_badges",
    "Badge",
    "TaskScores",
    "is_rated",
    "is_monster",
    "is_monster_effective",
    "is_overdue",
    "is_today_item",
    "calibration_factor",
    "buffered_minutes",
    "usable_capacity",
    "remaining_day_minutes",
    "assign_tier",
    "get_tier_name",
    "stack_rank",
    "adjusted_priority_score",
    "suggest_top3",
    "check_top3_admission",
    "top3_stats",
    "rerack",
    "value_density",
    "plan_daily_maintenance",
]
