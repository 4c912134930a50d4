"""Planner settings model for Battle Plan.

Settings are stored as individual key/value rows; reads resolve every
whitelisted key against its default.
"""

from datetime import date
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field


class PlannerSettings(BaseModel):
    """Resolved planner settings (every key has a value)."""

    weekday_capacity_minutes: int = Field(180, description="Base capacity Monday-Friday")
    weekend_capacity_minutes: int = Field(360, description="Base capacity Saturday-Sunday")
    always_plan_slack_percent: int = Field(30, description="Share of capacity never planned")
    workday_end_hour: int = Field(18, description="Hour the working day ends (time pressure)")
    auto_roll_tomorrow_to_today: bool = Field(True, description="Carry tomorrow items over at rollover")
    top3_auto_clear_daily: bool = Field(True, description="Clear stale unlocked Top 3 at rollover")
    timer_default: int = Field(25, description="Default focus timer length in minutes")
    capacity_override_minutes: Optional[int] = Field(None, description="One-day absolute capacity")
    capacity_override_date: Optional[date] = Field(None, description="Day the override applies to")


SETTING_KEYS = tuple(PlannerSettings.model_fields.keys())


class SettingsUpdate(BaseModel):
    """Explicit settings write. Unknown keys are rejected."""

    weekday_capacity_minutes: Optional[int] = Field(None, ge=0, le=1440)
    weekend_capacity_minutes: Optional[int] = Field(None, ge=0, le=1440)
    always_plan_slack_percent: Optional[int] = Field(None, ge=0, le=90)
    workday_end_hour: Optional[int] = Field(None, ge=0, le=24)
    auto_roll_tomorrow_to_today: Optional[bool] = None
    top3_auto_clear_daily: Optional[bool] = None
    timer_default: Optional[int] = Field(None, ge=1, le=240)

    class Config:
        """Pydantic configuration."""
        extra = "forbid"

    def changes(self) -> dict:
        """Fields explicitly provided by the caller (None values are skipped)."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


def resolve_settings(stored: Mapping[str, Any]) -> PlannerSettings:
    """Resolve stored key/value rows against the defaults (unknown keys ignored)."""
    return PlannerSettings(**{
        key: value for key, value in stored.items()
        if key in SETTING_KEYS and value is not None
    })
