"""Task data model for Battle Plan."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from battleplan.models.constants import (
    ACE_MAX,
    ACE_MIN,
    ESTIMATE_BUCKETS,
    LMT_MAX,
    LMT_MIN,
)


class TaskStatus(str, Enum):
    """Task lifecycle status. Exactly one at a time; governs which views show the task."""
    INBOX = "inbox"
    TODAY = "today"
    TOMORROW = "tomorrow"
    NEXT = "next"
    WAITING = "waiting"
    SOMEDAY = "someday"
    DONE = "done"


class TaskTag(str, Enum):
    """Task category. Also the key for calibration history."""
    HOME = "Home"
    ARMY = "Army"
    BUSINESS = "Business"
    OTHER = "Other"


class Confidence(str, Enum):
    """Confidence in the time estimate."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Recurrence(str, Enum):
    """Recurrence rule."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Task(BaseModel):
    """Canonical Task model.

    Rating and bucket fields are deliberately unconstrained here: persisted
    records may hold anything, and `battleplan.engine.classification.is_rated`
    is the authority on whether a task is usable for planning. Incoming user
    edits are validated by `TaskCreate`/`TaskUpdate` instead.
    """

    id: str = Field(..., description="Unique task identifier")
    description: str = Field(..., description="Free-text task description")
    status: TaskStatus = Field(TaskStatus.INBOX, description="Lifecycle status")
    tag: Optional[TaskTag] = Field(None, description="Category (calibration bucket)")
    next_action: Optional[str] = Field(None, description="Concrete next physical action")

    # ACE ratings (1-5)
    impact: Optional[int] = Field(None, description="A: impact")
    consequences: Optional[int] = Field(None, description="C: consequences of not doing it")
    friction: Optional[int] = Field(None, description="E: friction / effort")

    # LMT bonuses (0-2)
    leverage: Optional[int] = Field(None, description="L: leverage")
    energy_match: Optional[int] = Field(None, description="M: energy match")
    time_criticality: Optional[int] = Field(None, description="T: time criticality")

    # Time planning
    estimate_bucket: Optional[int] = Field(None, description="Estimated minutes (bucketed)")
    confidence: Optional[Confidence] = Field(None, description="Confidence in the estimate")
    actual_bucket: Optional[int] = Field(None, description="Minutes actually spent (set on completion)")

    # Scheduling
    scheduled_for_date: Optional[date] = Field(None, description="Day the task is planned for")
    due_date: Optional[date] = Field(None, description="Hard due date")

    # Top 3 (per-day membership)
    is_top3: bool = Field(False, description="Whether the task holds Top-3 membership")
    top3_order: Optional[int] = Field(None, description="Display order within the Top 3")
    top3_date: Optional[date] = Field(None, description="Day the Top-3 membership applies to")
    top3_locked: bool = Field(False, description="Set by explicit user action; survives re-suggestion")

    # Recurrence
    recurrence: Optional[Recurrence] = Field(None, description="Recurrence rule")
    recurrence_day: Optional[int] = Field(
        None,
        description="Weekday for weekly (0=Sunday..6=Saturday) or day-of-month for monthly (1-31)",
    )

    # Hierarchy
    parent_id: Optional[str] = Field(None, description="Parent task id (subtasks only)")

    # Timestamps
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    started_at: Optional[datetime] = Field(None, description="When work started (focus timer)")
    completed_at: Optional[datetime] = Field(None, description="Completion timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


def _check_range(value: Optional[int], low: int, high: int, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}")
    return value


class _TaskFieldsValidation(BaseModel):
    """Range checks shared by TaskCreate and TaskUpdate."""

    @field_validator("impact", "consequences", "friction", check_fields=False)
    @classmethod
    def _validate_ace(cls, v, info):
        return _check_range(v, ACE_MIN, ACE_MAX, info.field_name)

    @field_validator("leverage", "energy_match", "time_criticality", check_fields=False)
    @classmethod
    def _validate_lmt(cls, v, info):
        return _check_range(v, LMT_MIN, LMT_MAX, info.field_name)

    @field_validator("estimate_bucket", check_fields=False)
    @classmethod
    def _validate_estimate(cls, v):
        if v is not None and v not in ESTIMATE_BUCKETS:
            raise ValueError(f"estimate_bucket must be one of {list(ESTIMATE_BUCKETS)}")
        return v

    @field_validator("actual_bucket", check_fields=False)
    @classmethod
    def _validate_actual(cls, v):
        if v is not None and v < 0:
            raise ValueError("actual_bucket must not be negative")
        return v

    @model_validator(mode="after")
    def _validate_recurrence_day(self):
        recurrence = getattr(self, "recurrence", None)
        day = getattr(self, "recurrence_day", None)
        if day is None:
            return self
        if recurrence == Recurrence.WEEKLY and not 0 <= day <= 6:
            raise ValueError("recurrence_day must be 0-6 for weekly recurrence")
        if recurrence == Recurrence.MONTHLY and not 1 <= day <= 31:
            raise ValueError("recurrence_day must be 1-31 for monthly recurrence")
        return self


class TaskCreate(_TaskFieldsValidation):
    """Fields accepted when adding a task."""

    description: str = Field(..., min_length=1)
    status: TaskStatus = TaskStatus.INBOX
    tag: Optional[TaskTag] = None
    next_action: Optional[str] = None
    impact: Optional[int] = None
    consequences: Optional[int] = None
    friction: Optional[int] = None
    leverage: Optional[int] = None
    energy_match: Optional[int] = None
    time_criticality: Optional[int] = None
    estimate_bucket: Optional[int] = None
    confidence: Optional[Confidence] = None
    scheduled_for_date: Optional[date] = None
    due_date: Optional[date] = None
    recurrence: Optional[Recurrence] = None
    recurrence_day: Optional[int] = None
    parent_id: Optional[str] = None

    @field_validator("description")
    @classmethod
    def _strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be blank")
        return v

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
        extra = "forbid"


class TaskUpdate(_TaskFieldsValidation):
    """Explicit partial update of a task.

    Only fields the caller actually set are applied (`model_dump(exclude_unset=True)`),
    so setting a field to None clears it while omitting it leaves it alone.
    Top-3 membership, completion and timestamps are managed by dedicated
    operations and cannot be written here.
    """

    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    tag: Optional[TaskTag] = None
    next_action: Optional[str] = None
    impact: Optional[int] = None
    consequences: Optional[int] = None
    friction: Optional[int] = None
    leverage: Optional[int] = None
    energy_match: Optional[int] = None
    time_criticality: Optional[int] = None
    estimate_bucket: Optional[int] = None
    confidence: Optional[Confidence] = None
    actual_bucket: Optional[int] = None
    scheduled_for_date: Optional[date] = None
    due_date: Optional[date] = None
    recurrence: Optional[Recurrence] = None
    recurrence_day: Optional[int] = None

    @field_validator("description")
    @classmethod
    def _strip_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("description must not be blank")
        return v

    def changes(self) -> dict:
        """Fields explicitly provided by the caller."""
        return self.model_dump(exclude_unset=True)

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
        extra = "forbid"
