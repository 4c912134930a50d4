"""Daily capacity model for Battle Plan.

Two different budgets exist:
- usable capacity: how much work is sane to commit to today (base capacity
  minus a permanent slack percentage, or an explicit one-day override);
- remaining day minutes: how much wall-clock time is left before the
  configured end of the working day.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from battleplan.models.settings import PlannerSettings


def is_weekend(day: date) -> bool:
    # Python weekday: Monday=0 ... Sunday=6
    return day.weekday() >= 5


def base_capacity(settings: PlannerSettings, today: date) -> int:
    if is_weekend(today):
        return settings.weekend_capacity_minutes
    return settings.weekday_capacity_minutes


def active_override(settings: PlannerSettings, today: date) -> Optional[int]:
    """The capacity override, if one is set for today (it expires at midnight)."""
    if settings.capacity_override_minutes is None:
        return None
    if settings.capacity_override_date != today:
        return None
    return settings.capacity_override_minutes


def usable_capacity(settings: PlannerSettings, today: date, include_override: bool = True) -> int:
    """Minutes that may be planned today.

    An active override replaces the computed value entirely and is not
    reduced by slack.
    """
    if include_override:
        override = active_override(settings, today)
        if override is not None:
            return override

    base = base_capacity(settings, today)
    # Half-up rounding in integers; floats land just below .5 (175 * 0.7)
    return (base * (100 - settings.always_plan_slack_percent) * 2 + 100) // 200


def remaining_day_minutes(now: datetime, workday_end_hour: int) -> int:
    """Whole minutes from `now` until the end of the working day (never negative)."""
    end = datetime.combine(now.date(), datetime.min.time()) + timedelta(hours=workday_end_hour)
    return max(0, int((end - now).total_seconds() // 60))
