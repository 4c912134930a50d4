"""Result models returned by planning operations."""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from battleplan.models.task import Task


class ScoredTask(BaseModel):
    """A task with the figures shown on its card."""

    task: Task
    ace_score: Optional[int] = None
    lmt_bonus: Optional[int] = None
    priority_score: Optional[int] = None
    buffered_minutes: Optional[int] = None
    is_rated: bool = False
    badges: List[str] = Field(default_factory=list)
    tier: int
    tier_name: str


class Top3Candidate(BaseModel):
    """A task considered for the Top 3, with its planning figures."""

    task: Task
    priority_score: Optional[int] = None
    buffered_minutes: int = 0
    is_urgent: bool = False
    is_monster: bool = False
    locked: bool = False


class Top3Suggestion(BaseModel):
    """Read-only Top-3 selection plan."""

    suggested: List[Top3Candidate] = Field(default_factory=list)
    used_minutes: int = 0
    capacity: int = 0
    message: Optional[str] = None
    monster_count: int = 0
    locked_count: int = 0


class Top3Rejection(BaseModel):
    """Why a task could not be added to the Top 3."""

    error: str
    message: str


class Top3Stats(BaseModel):
    """Summary of today's valid Top-3 membership."""

    total_buffered: int = 0
    capacity: int = 0
    monster_count: int = 0
    locked_count: int = 0
    is_over_capacity: bool = False
    top3_count: int = 0


class RerackEntry(BaseModel):
    """One rated task placed by the rerack."""

    task: Task
    buffered_minutes: int
    priority_score: int
    density: float
    protected: bool = False
    reason: Optional[str] = None


class RerackResult(BaseModel):
    """Which remaining tasks still fit today, and why the others do not."""

    capacity: int
    used_minutes: int = 0
    protected_minutes: int = 0
    remaining_minutes: int = 0
    protected_overflow: bool = False
    keep: List[RerackEntry] = Field(default_factory=list)
    overflow: List[RerackEntry] = Field(default_factory=list)
    unrated: List[Task] = Field(default_factory=list)
    completed_id: Optional[str] = None
    overrun_minutes: int = 0


class MaintenanceResult(BaseModel):
    """Counts reported by the daily rollover."""

    overdue_count: int = 0
    rolled_count: int = 0
    deferred_count: int = 0
    cleared_top3_count: int = 0


class MaintenancePlan(BaseModel):
    """Field updates the rollover wants written, keyed by task id."""

    updates: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    result: MaintenanceResult = Field(default_factory=MaintenanceResult)


class CompletionResult(BaseModel):
    """Outcome of completing a task."""

    task: Task
    actual_minutes: int
    calibration_recorded: bool = False
    next_task: Optional[Task] = None


class CapacitySnapshot(BaseModel):
    """Today's capacity figures."""

    date: date
    is_weekend: bool
    base_capacity: int
    slack_percent: int
    usable_capacity: int
    usable_without_override: int
    override_minutes: Optional[int] = None
    consumed_minutes: int = 0
    remaining_minutes: int = 0
    remaining_day_minutes: int = 0


class TodayStats(BaseModel):
    """Counts for the Today view header."""

    total_tasks: int = 0
    rated_count: int = 0
    unrated_count: int = 0
    overdue_count: int = 0
    top3: Top3Stats = Field(default_factory=Top3Stats)


class ImportResult(BaseModel):
    """Outcome of a snapshot import."""

    success: bool
    error: Optional[str] = None
    message: Optional[str] = None
    tasks_imported: int = 0
    tasks_skipped: int = 0
    ids_regenerated: int = 0
    routines_imported: int = 0
    calibration_imported: int = 0
    settings_imported: int = 0


class DiagnosticsSample(BaseModel):
    """One rated today task in suggestion order."""

    description: str
    priority_score: Optional[int] = None
    is_monster: bool = False
    is_urgent: bool = False


class Diagnostics(BaseModel):
    """Self-check report over the whole store."""

    date: date
    total_tasks: int = 0
    today_count: int = 0
    rated_count: int = 0
    unrated_count: int = 0
    overdue_count: int = 0
    monster_count: int = 0
    top3_count: int = 0
    top3_buffered_total: int = 0
    usable_capacity: int = 0
    capacity_used_percent: int = 0
    sample_sort_order: List[DiagnosticsSample] = Field(default_factory=list)
