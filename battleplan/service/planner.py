"""Planner service for Battle Plan.

The Planner is the command surface the HTTP layer (and structured intents)
call into. It owns no state of its own beyond two caches:

- a read-through snapshot of the task collection, dropped after every
  mutation the planner performs;
- calibration factors per tag, dropped when a new calibration entry lands.

Storage and the clock are injected so the whole thing runs against an
in-memory SQLite session and a fixed "now" in tests.
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from battleplan.config import local_now
from battleplan.database.storage import Storage
from battleplan.engine.calibration import buffered_minutes, calibration_factor
from battleplan.engine.capacity import (
    active_override,
    base_capacity,
    is_weekend,
    remaining_day_minutes,
    usable_capacity,
)
from battleplan.engine.classification import (
    has_valid_top3,
    is_done,
    is_monster,
    is_overdue,
    is_rated,
    is_today_item,
)
from battleplan.engine.ranking import stack_rank
from battleplan.engine.rerack import REASON_NO_CAPACITY, REASON_NO_TIME, rerack
from battleplan.engine.rollover import CLEARED_TOP3_FIELDS, plan_daily_maintenance
from battleplan.engine.scoring import calculate_badges, calculate_score, is_urgent, priority_score
from battleplan.engine.tiering import assign_tier, get_tier_name
from battleplan.engine.top3 import check_top3_admission, top3_stats
from battleplan.engine.top3 import suggest_top3 as build_top3_suggestion
from battleplan.models.calibration import CalibrationEntry
from battleplan.models.constants import (
    CALIBRATION_WINDOW,
    DEFAULT_CALIBRATION_TAG,
    MAX_INFERRED_ACTUAL_MINUTES,
    MIN_INFERRED_ACTUAL_MINUTES,
    PRESETS,
)
from battleplan.models.plans import (
    CapacitySnapshot,
    CompletionResult,
    Diagnostics,
    DiagnosticsSample,
    ImportResult,
    MaintenanceResult,
    RerackResult,
    ScoredTask,
    Top3Rejection,
    Top3Stats,
    Top3Suggestion,
    TodayStats,
)
from battleplan.models.routine import Routine, RoutineCreate, RoutineUpdate, TemplateItem
from battleplan.models.settings import PlannerSettings, SettingsUpdate, resolve_settings
from battleplan.models.task import Task, TaskCreate, TaskStatus, TaskUpdate
from battleplan.models.task_factory import create_task_base, create_task_from_request, generate_id
from battleplan.recurrence.next_occurrence import build_next_instance
from battleplan.service.transfer import export_snapshot, import_snapshot

logger = logging.getLogger(__name__)

# Fields that are NOT NULL in storage; an explicit None in an update means "leave alone"
_REQUIRED_FIELDS = ("description", "status")

TOP3_RESET_FIELDS = {**CLEARED_TOP3_FIELDS, "top3_locked": False}


def _half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _spent_minutes(task: Task) -> int:
    return task.actual_bucket or task.estimate_bucket or 0


class Planner:
    """Task planning operations over an injected Storage handle."""

    def __init__(
        self,
        storage: Storage,
        now: Callable[[], datetime] = local_now,
        backup=None,
    ):
        """Create a planner.

        Args:
            storage: Repository bundle for one database session
            now: Clock returning naive local time; "today" is its date
            backup: Optional object with a `touch()` method, poked after every mutation
        """
        self.storage = storage
        self._now = now
        self.backup = backup
        self._snapshot: Optional[List[Task]] = None
        self._factors: Dict[str, float] = {}

    # ------------------------------------------------------------------
    # Clock and caches
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return self._now()

    def today(self) -> date:
        return self._now().date()

    def all_tasks(self) -> List[Task]:
        """Every task (newest first), served from the snapshot cache."""
        if self._snapshot is None:
            self._snapshot = self.storage.tasks.get_all()
        return list(self._snapshot)

    def invalidate(self) -> None:
        """Drop cached reads (call after writing to storage behind the planner's back)."""
        self._snapshot = None
        self._factors.clear()

    def _mutated(self) -> None:
        self._snapshot = None
        if self.backup is not None:
            self.backup.touch()

    def _subtasks_by_parent(self, tasks: Iterable[Task]) -> Dict[str, List[Task]]:
        grouped: Dict[str, List[Task]] = {}
        for task in tasks:
            if task.parent_id:
                grouped.setdefault(task.parent_id, []).append(task)
        return grouped

    def _write(self, task_id: str, fields: Dict[str, Any]) -> Optional[Task]:
        task = self.storage.tasks.update_fields(task_id, {**fields, "updated_at": self.now()})
        if task is not None:
            self._mutated()
        return task

    # ------------------------------------------------------------------
    # Settings and capacity
    # ------------------------------------------------------------------

    def get_settings(self) -> PlannerSettings:
        """Stored settings resolved against their defaults."""
        return resolve_settings(self.storage.settings.get_all())

    def update_settings(self, update: SettingsUpdate) -> PlannerSettings:
        changes = update.changes()
        if changes:
            self.storage.settings.set_many(changes)
            self._mutated()
            logger.info(f"Updated settings: {sorted(changes)}")
        return self.get_settings()

    def set_capacity_override(self, minutes: int) -> PlannerSettings:
        """Replace today's usable capacity with an absolute number of minutes.

        The override expires on its own once the date moves on.

        Raises:
            ValueError: If minutes is negative
        """
        if minutes < 0:
            raise ValueError("capacity override must not be negative")
        self.storage.settings.set_many({
            "capacity_override_minutes": int(minutes),
            "capacity_override_date": self.today().isoformat(),
        })
        self._mutated()
        return self.get_settings()

    def clear_capacity_override(self) -> PlannerSettings:
        self.storage.settings.set_many({
            "capacity_override_minutes": None,
            "capacity_override_date": None,
        })
        self._mutated()
        return self.get_settings()

    def get_usable_capacity(self, include_override: bool = True) -> int:
        return usable_capacity(self.get_settings(), self.today(), include_override)

    def get_remaining_day_minutes(self) -> int:
        return remaining_day_minutes(self.now(), self.get_settings().workday_end_hour)

    def get_consumed_minutes(self) -> int:
        """Minutes spent on tasks completed today (actual, falling back to estimate)."""
        today = self.today()
        return sum(
            _spent_minutes(t) for t in self.all_tasks()
            if is_done(t) and t.completed_at is not None and t.completed_at.date() == today
        )

    def get_capacity_snapshot(self) -> CapacitySnapshot:
        settings = self.get_settings()
        today = self.today()
        usable = usable_capacity(settings, today)
        consumed = self.get_consumed_minutes()
        return CapacitySnapshot(
            date=today,
            is_weekend=is_weekend(today),
            base_capacity=base_capacity(settings, today),
            slack_percent=settings.always_plan_slack_percent,
            usable_capacity=usable,
            usable_without_override=usable_capacity(settings, today, include_override=False),
            override_minutes=active_override(settings, today),
            consumed_minutes=consumed,
            remaining_minutes=max(0, usable - consumed),
            remaining_day_minutes=remaining_day_minutes(self.now(), settings.workday_end_hour),
        )

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def get_calibration_factor(self, tag: Optional[str] = None) -> float:
        """Correction factor in [1.0, 2.0] learned from the tag's recent history."""
        tag = tag or DEFAULT_CALIBRATION_TAG
        if tag not in self._factors:
            entries = self.storage.calibration.get_recent(tag, CALIBRATION_WINDOW)
            self._factors[tag] = calibration_factor(entries)
        return self._factors[tag]

    def get_buffered_minutes(self, task: Task) -> Optional[int]:
        return buffered_minutes(
            task.estimate_bucket,
            task.confidence,
            self.get_calibration_factor(task.tag),
        )

    def add_calibration_entry(
        self,
        tag: Optional[str],
        estimate: Optional[int],
        actual: Optional[int],
    ) -> Optional[CalibrationEntry]:
        """Append a calibration entry; silently skipped unless both values are positive."""
        if not estimate or not actual or estimate <= 0 or actual <= 0:
            logger.debug(f"Skipped calibration entry for {tag}: estimate={estimate}, actual={actual}")
            return None

        tag = tag or DEFAULT_CALIBRATION_TAG
        entry = self.storage.calibration.add(CalibrationEntry(
            id=generate_id(),
            tag=tag,
            estimate_bucket=estimate,
            actual_bucket=actual,
            completed_at=self.now(),
        ))
        self._factors.pop(tag, None)
        self._mutated()
        return entry

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.storage.tasks.get(task_id)

    def add_task(self, request: TaskCreate) -> Optional[Task]:
        """Create a task.

        Returns:
            The new task, or None when `parent_id` names a task that does not exist
        """
        if request.parent_id and self.storage.tasks.get(request.parent_id) is None:
            logger.debug(f"Rejected subtask of unknown parent {request.parent_id}")
            return None
        task = self.storage.tasks.create(create_task_from_request(request, self.now()))
        self._mutated()
        return task

    def update_task(self, task_id: str, update: TaskUpdate) -> Optional[Task]:
        """Apply the fields the caller set; None when the task does not exist."""
        changes = update.changes()
        for name in _REQUIRED_FIELDS:
            if name in changes and changes[name] is None:
                del changes[name]
        if not changes:
            return self.get_task(task_id)
        return self._write(task_id, changes)

    def delete_task(self, task_id: str) -> bool:
        """Delete a task and, recursively, its subtasks."""
        if self.storage.tasks.get(task_id) is None:
            return False

        children = self._subtasks_by_parent(self.all_tasks())
        doomed = [task_id]
        seen = {task_id}
        frontier = [task_id]
        while frontier:
            for child in children.get(frontier.pop(), []):
                if child.id not in seen:
                    seen.add(child.id)
                    doomed.append(child.id)
                    frontier.append(child.id)

        self.storage.tasks.delete_many(doomed)
        self._mutated()
        return True

    def start_task(self, task_id: str) -> Optional[Task]:
        """Stamp the start time so completion can infer the actual duration."""
        return self._write(task_id, {"started_at": self.now()})

    def set_today(self, task_id: str) -> Optional[Task]:
        return self._write(task_id, {"status": TaskStatus.TODAY.value, "scheduled_for_date": self.today()})

    def set_tomorrow(self, task_id: str) -> Optional[Task]:
        """Push a task to tomorrow; it leaves today's Top 3."""
        return self._write(task_id, {
            "status": TaskStatus.TOMORROW.value,
            "scheduled_for_date": self.today() + timedelta(days=1),
            **TOP3_RESET_FIELDS,
        })

    def get_presets(self) -> Dict[str, Dict[str, Any]]:
        return {key: dict(values) for key, values in PRESETS.items()}

    def apply_preset(self, task_id: str, preset_key: str) -> Optional[Task]:
        """Fill in ratings from a named preset; None for an unknown task or preset."""
        preset = PRESETS.get(preset_key)
        if preset is None:
            logger.debug(f"Unknown preset {preset_key}")
            return None
        return self._write(task_id, {k: v for k, v in preset.items() if k != "name"})

    def get_subtasks(self, task_id: str) -> List[Task]:
        return stack_rank(self.storage.tasks.get_children(task_id), self.today())

    def search(self, query: str, status: Optional[str] = None) -> List[Task]:
        """Case-insensitive search over description and next action, in list order."""
        return stack_rank(self.storage.tasks.search(query, status), self.today())

    def find_by_keyword(self, keyword: str) -> Optional[Task]:
        """Best-ranked open task matching a keyword."""
        matches = [t for t in self.search(keyword) if not is_done(t)]
        return matches[0] if matches else None

    def complete_task(
        self,
        task_id: str,
        actual_minutes: Optional[int] = None,
        skip_recurrence: bool = False,
    ) -> Optional[CompletionResult]:
        """Mark a task done, learn from its duration and spawn the next recurrence.

        Actual minutes come from `actual_minutes` when given, else the elapsed
        time since `start_task` (only when between 1 and 480 minutes), else
        the estimate, else 0.

        Args:
            task_id: Task to complete
            actual_minutes: Minutes actually spent
            skip_recurrence: Do not create the next instance of a recurring task

        Returns:
            CompletionResult, or None when the task does not exist
        """
        task = self.get_task(task_id)
        if task is None:
            return None
        if is_done(task):
            return CompletionResult(task=task, actual_minutes=task.actual_bucket or 0)

        now = self.now()
        actual = self._resolve_actual_minutes(task, actual_minutes, now)

        entry = None
        if task.estimate_bucket and task.estimate_bucket > 0 and actual > 0:
            entry = self.add_calibration_entry(task.tag, task.estimate_bucket, actual)

        next_task = None
        if task.recurrence and not skip_recurrence:
            next_task = self.storage.tasks.create(build_next_instance(task, now.date(), now))
            logger.info(f"Scheduled next {task.recurrence} instance of {task.id} for {next_task.scheduled_for_date}")

        done = self._write(task_id, {
            "status": TaskStatus.DONE.value,
            "actual_bucket": actual,
            "completed_at": now,
            "started_at": None,
            **TOP3_RESET_FIELDS,
        })
        return CompletionResult(
            task=done,
            actual_minutes=actual,
            calibration_recorded=entry is not None,
            next_task=next_task,
        )

    def _resolve_actual_minutes(self, task: Task, actual_minutes: Optional[int], now: datetime) -> int:
        if actual_minutes is not None:
            return max(0, int(actual_minutes))
        if task.started_at is not None:
            elapsed = _half_up((now - task.started_at).total_seconds() / 60)
            if MIN_INFERRED_ACTUAL_MINUTES <= elapsed <= MAX_INFERRED_ACTUAL_MINUTES:
                return elapsed
        return task.estimate_bucket or 0

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_today_items(self) -> List[Task]:
        today = self.today()
        return stack_rank([t for t in self.all_tasks() if is_today_item(t, today)], today)

    def get_inbox(self) -> List[Task]:
        return self.get_by_status(TaskStatus.INBOX.value)

    def get_by_status(self, status: Optional[str] = None) -> List[Task]:
        """Top-level tasks with the given status (any status when None), in list order."""
        return stack_rank(
            [t for t in self.all_tasks() if not t.parent_id and status in (None, t.status)],
            self.today(),
        )

    def get_tomorrow_items(self) -> List[Task]:
        """Scheduled for tomorrow, or marked tomorrow without a date."""
        today = self.today()
        tomorrow = today + timedelta(days=1)
        items = [
            t for t in self.all_tasks()
            if not t.parent_id and not is_done(t) and (
                t.scheduled_for_date == tomorrow
                or (t.status == TaskStatus.TOMORROW and t.scheduled_for_date is None)
            )
        ]
        return stack_rank(items, today)

    def score_task(self, task: Task) -> ScoredTask:
        """Scores, badges, tier and buffered minutes for one task."""
        scores = calculate_score(task)
        tier = assign_tier(task, self.today())
        return ScoredTask(
            task=task,
            ace_score=scores.ace_score,
            lmt_bonus=scores.lmt_bonus,
            priority_score=scores.priority_score,
            buffered_minutes=self.get_buffered_minutes(task),
            is_rated=is_rated(task),
            badges=[b.value for b in calculate_badges(task)],
            tier=tier,
            tier_name=get_tier_name(tier),
        )

    def get_scored_today_items(self) -> List[ScoredTask]:
        return [self.score_task(t) for t in self.get_today_items()]

    def get_top3_items(self) -> List[Task]:
        """Today's valid Top-3 members in display order."""
        today = self.today()
        members = [t for t in self.all_tasks() if has_valid_top3(t, today)]
        return sorted(members, key=lambda t: (t.top3_order is None, t.top3_order or 0))

    # ------------------------------------------------------------------
    # Top 3
    # ------------------------------------------------------------------

    def set_top3(
        self,
        task_id: str,
        make_top3: bool = True,
        manual_toggle: bool = True,
    ) -> Union[Task, Top3Rejection, None]:
        """Add a task to (or remove it from) today's Top 3.

        Args:
            task_id: Task to change
            make_top3: True to add, False to remove
            manual_toggle: A manual toggle locks the membership; automated callers pass False

        Returns:
            The updated task, a Top3Rejection (MONSTER_LIMIT / TOP3_FULL), or
            None when the task does not exist
        """
        task = self.get_task(task_id)
        if task is None:
            return None

        if not make_top3:
            return self._write(task_id, dict(TOP3_RESET_FIELDS))

        today = self.today()
        tasks = self.all_tasks()
        members = [t for t in tasks if has_valid_top3(t, today)]
        rejection = check_top3_admission(task, members, self._subtasks_by_parent(tasks))
        if rejection is not None:
            logger.debug(f"Rejected Top 3 for {task_id}: {rejection.error}")
            return rejection

        if any(m.id == task_id for m in members):
            return self._write(task_id, {"top3_locked": manual_toggle})

        return self._write(task_id, {
            "is_top3": True,
            "top3_order": len(members),
            "top3_date": today,
            "top3_locked": manual_toggle,
        })

    def suggest_top3(self) -> Top3Suggestion:
        """Read-only Top-3 plan for today."""
        today = self.today()
        tasks = self.all_tasks()
        return build_top3_suggestion(
            [t for t in tasks if is_today_item(t, today)],
            today,
            self.get_usable_capacity(),
            self.get_buffered_minutes,
            self._subtasks_by_parent(tasks),
            current_members=[t for t in tasks if has_valid_top3(t, today)],
        )

    def apply_top3_suggestion(self) -> Top3Suggestion:
        """Replace today's unlocked Top 3 with a fresh suggestion.

        Locked members stay as they are; suggested tasks are written unlocked
        with sequential order.
        """
        suggestion = self.suggest_top3()
        today = self.today()
        selected_ids = {c.task.id for c in suggestion.suggested}

        for task in self.all_tasks():
            if has_valid_top3(task, today) and not task.top3_locked and task.id not in selected_ids:
                self.storage.tasks.update_fields(task.id, {**CLEARED_TOP3_FIELDS, "updated_at": self.now()})

        for order, candidate in enumerate(suggestion.suggested):
            if candidate.locked:
                continue
            self.storage.tasks.update_fields(candidate.task.id, {
                "is_top3": True,
                "top3_order": order,
                "top3_date": today,
                "top3_locked": False,
                "updated_at": self.now(),
            })

        self._mutated()
        logger.info(
            f"Applied Top 3 suggestion: {len(suggestion.suggested)} tasks "
            f"({suggestion.locked_count} locked), {suggestion.used_minutes}/{suggestion.capacity} min"
        )
        return suggestion

    def get_top3_stats(self) -> Top3Stats:
        today = self.today()
        tasks = self.all_tasks()
        return top3_stats(
            [t for t in tasks if has_valid_top3(t, today)],
            self.get_usable_capacity(),
            self.get_buffered_minutes,
            self._subtasks_by_parent(tasks),
        )

    # ------------------------------------------------------------------
    # Rerack and maintenance
    # ------------------------------------------------------------------

    def _remaining_budget(self) -> int:
        return self.get_usable_capacity() - self.get_consumed_minutes()

    def _remaining_today(self) -> List[Task]:
        today = self.today()
        return stack_rank([t for t in self.all_tasks() if is_today_item(t, today)], today)

    def rerack_after_completion(
        self,
        completed_id: Optional[str] = None,
        locked_ids: Iterable[str] = (),
    ) -> RerackResult:
        """What still fits in today's remaining budget after a completion."""
        result = rerack(
            self._remaining_today(),
            self.today(),
            self._remaining_budget(),
            self.get_buffered_minutes,
            locked_ids=locked_ids,
            exclude_id=completed_id,
            default_reason=REASON_NO_CAPACITY,
        )
        result.completed_id = completed_id

        completed = self.get_task(completed_id) if completed_id else None
        if completed is not None and completed.actual_bucket and completed.estimate_bucket:
            result.overrun_minutes = max(0, completed.actual_bucket - completed.estimate_bucket)
        return result

    def rerack_for_time_pressure(self, locked_ids: Iterable[str] = ()) -> RerackResult:
        """What still fits given the tighter of remaining budget and wall-clock time."""
        ceiling = min(self._remaining_budget(), self.get_remaining_day_minutes())
        return rerack(
            self._remaining_today(),
            self.today(),
            ceiling,
            self.get_buffered_minutes,
            locked_ids=locked_ids,
            default_reason=REASON_NO_TIME,
        )

    def run_daily_maintenance(self) -> MaintenanceResult:
        """Roll the task list over to today. Safe to run repeatedly."""
        settings = self.get_settings()
        today = self.today()
        plan = plan_daily_maintenance(
            self.all_tasks(),
            today,
            usable_capacity(settings, today),
            self.get_buffered_minutes,
            auto_clear_top3=settings.top3_auto_clear_daily,
            auto_roll_tomorrow=settings.auto_roll_tomorrow_to_today,
        )

        try:
            for task_id, fields in plan.updates.items():
                self.storage.tasks.update_fields(task_id, {**fields, "updated_at": self.now()})
        finally:
            if plan.updates:
                self._mutated()

        counts = plan.result
        logger.info(
            f"Daily maintenance: {counts.overdue_count} overdue, {counts.rolled_count} rolled, "
            f"{counts.deferred_count} deferred, {counts.cleared_top3_count} stale Top 3 cleared"
        )
        return counts

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_today_stats(self) -> TodayStats:
        today = self.today()
        tasks = self.all_tasks()
        items = [t for t in tasks if is_today_item(t, today)]
        rated = sum(1 for t in items if is_rated(t))
        return TodayStats(
            total_tasks=len(items),
            rated_count=rated,
            unrated_count=len(items) - rated,
            overdue_count=sum(1 for t in tasks if is_overdue(t, today)),
            top3=self.get_top3_stats(),
        )

    def run_diagnostics(self) -> Diagnostics:
        """Counts and a sample of the suggestion order, for troubleshooting."""
        today = self.today()
        tasks = self.all_tasks()
        items = [t for t in tasks if is_today_item(t, today)]
        rated = [t for t in items if is_rated(t)]
        top3_items = self.get_top3_items()
        capacity = self.get_usable_capacity()
        top3_total = sum(self.get_buffered_minutes(t) or 0 for t in top3_items)

        sample = sorted(rated, key=lambda t: (not is_urgent(t), -(priority_score(t) or 0)))[:5]
        diagnostics = Diagnostics(
            date=today,
            total_tasks=len(tasks),
            today_count=len(items),
            rated_count=len(rated),
            unrated_count=len(items) - len(rated),
            overdue_count=sum(1 for t in tasks if is_overdue(t, today)),
            monster_count=sum(1 for t in items if is_monster(t)),
            top3_count=len(top3_items),
            top3_buffered_total=top3_total,
            usable_capacity=capacity,
            capacity_used_percent=_half_up(top3_total / capacity * 100) if capacity > 0 else 0,
            sample_sort_order=[
                DiagnosticsSample(
                    description=t.description[:30],
                    priority_score=priority_score(t),
                    is_monster=is_monster(t),
                    is_urgent=is_urgent(t),
                )
                for t in sample
            ],
        )
        logger.debug(f"Diagnostics: {diagnostics.model_dump()}")
        return diagnostics

    # ------------------------------------------------------------------
    # Routines
    # ------------------------------------------------------------------

    def add_routine(self, request: RoutineCreate) -> Routine:
        routine = self.storage.routines.create(Routine(
            id=generate_id(),
            name=request.name.strip(),
            items=request.items,
            created_at=self.now(),
        ))
        self._mutated()
        return routine

    def get_routine(self, routine_id: str) -> Optional[Routine]:
        return self.storage.routines.get(routine_id)

    def list_routines(self) -> List[Routine]:
        return self.storage.routines.get_all()

    def update_routine(self, routine_id: str, update: RoutineUpdate) -> Optional[Routine]:
        current = self.storage.routines.get(routine_id)
        if current is None:
            return None
        changes = update.changes()
        if not changes:
            return current
        routine = self.storage.routines.update(current.model_copy(update=changes))
        self._mutated()
        return routine

    def delete_routine(self, routine_id: str) -> bool:
        deleted = self.storage.routines.delete(routine_id)
        if deleted:
            self._mutated()
        return deleted

    def run_routine(self, routine_id: str) -> Optional[List[Task]]:
        """Create one task for today per routine item.

        Template items carry their tag, estimate, confidence and ratings onto
        the created task.

        Returns:
            The created tasks, or None when the routine does not exist
        """
        routine = self.storage.routines.get(routine_id)
        if routine is None:
            return None

        now = self.now()
        created: List[Task] = []
        for item in routine.items:
            overrides: Dict[str, Any] = {}
            if isinstance(item, TemplateItem):
                overrides = item.model_dump(exclude={"kind", "text"})
            task = create_task_base(
                item.text,
                now,
                status=TaskStatus.TODAY,
                scheduled_for_date=now.date(),
                **overrides,
            )
            created.append(self.storage.tasks.create(task))

        if created:
            self._mutated()
        logger.info(f"Ran routine {routine.name}: {len(created)} tasks added to today")
        return created

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def export_snapshot(self) -> Dict[str, Any]:
        return export_snapshot(self.storage, self.now())

    def import_snapshot(self, data: Any) -> ImportResult:
        """Replace all data with a snapshot; rejected snapshots change nothing."""
        result = import_snapshot(self.storage, data, self.now())
        if result.success:
            self.invalidate()
            self._mutated()
        else:
            logger.info(f"Rejected snapshot import: {result.error}: {result.message}")
        return result
