"""Structured intents for Battle Plan.

A voice or chat front end parses free text into one of these models (the
planner never parses language itself). `execute_intent` dispatches an
intent to the planner and reports the outcome as an `IntentResult`.
Intents that target a task accept either its id or a keyword; keywords
resolve to the best-ranked open match.
"""

import logging
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from battleplan.models.task import Task, TaskCreate, TaskStatus, TaskUpdate
from battleplan.service.planner import Planner

logger = logging.getLogger(__name__)


class IntentResult(BaseModel):
    """Outcome of an intent: a message for the user plus optional JSON data."""

    success: bool
    message: str
    data: Optional[Any] = None


class _TargetedIntent(BaseModel):
    task_id: Optional[str] = None
    keyword: Optional[str] = None

    @model_validator(mode="after")
    def _require_target(self):
        if not self.task_id and not (self.keyword and self.keyword.strip()):
            raise ValueError("task_id or keyword is required")
        return self


class AddTaskIntent(BaseModel):
    intent: Literal["add_task"] = "add_task"
    task: TaskCreate


class CompleteTaskIntent(_TargetedIntent):
    intent: Literal["complete_task"] = "complete_task"
    actual_minutes: Optional[int] = Field(None, ge=0)


class MoveTaskIntent(_TargetedIntent):
    intent: Literal["move_task"] = "move_task"
    destination: TaskStatus

    @model_validator(mode="after")
    def _not_done(self):
        if self.destination == TaskStatus.DONE:
            raise ValueError("use complete_task to finish a task")
        return self


class DeleteTaskIntent(_TargetedIntent):
    intent: Literal["delete_task"] = "delete_task"


class FindTaskIntent(BaseModel):
    intent: Literal["find_task"] = "find_task"
    keyword: str = Field(..., min_length=1)


class SuggestTop3Intent(BaseModel):
    intent: Literal["suggest_top3"] = "suggest_top3"
    apply: bool = False


class RunRoutineIntent(BaseModel):
    intent: Literal["run_routine"] = "run_routine"
    routine_id: Optional[str] = None
    name: Optional[str] = None

    @model_validator(mode="after")
    def _require_routine(self):
        if not self.routine_id and not self.name:
            raise ValueError("routine_id or name is required")
        return self


class GetStatsIntent(BaseModel):
    intent: Literal["get_stats"] = "get_stats"


class RerackIntent(BaseModel):
    intent: Literal["rerack"] = "rerack"
    mode: Literal["completion", "time_pressure"] = "time_pressure"
    completed_id: Optional[str] = None
    locked_ids: List[str] = Field(default_factory=list)


Intent = Annotated[
    Union[
        AddTaskIntent,
        CompleteTaskIntent,
        MoveTaskIntent,
        DeleteTaskIntent,
        FindTaskIntent,
        SuggestTop3Intent,
        RunRoutineIntent,
        GetStatsIntent,
        RerackIntent,
    ],
    Field(discriminator="intent"),
]

_INTENT_ADAPTER = TypeAdapter(Intent)


def parse_intent(payload: Any):
    """Validate a raw dict into an intent model (raises pydantic.ValidationError)."""
    return _INTENT_ADAPTER.validate_python(payload)


def _resolve_task(planner: Planner, intent: _TargetedIntent) -> Optional[Task]:
    if intent.task_id:
        return planner.get_task(intent.task_id)
    return planner.find_by_keyword(intent.keyword)


def _not_found(intent: _TargetedIntent) -> IntentResult:
    target = intent.task_id or f'"{intent.keyword}"'
    return IntentResult(success=False, message=f"No task found matching {target}")


def _task_data(task: Task) -> dict:
    return task.model_dump(mode="json")


def execute_intent(planner: Planner, intent) -> IntentResult:
    """Run a structured intent against the planner.

    Args:
        planner: Planner to act on
        intent: One of the intent models (see `Intent`)

    Returns:
        IntentResult; not-found and rejections are reported with success=False
    """
    logger.debug(f"Executing intent {intent.intent}")

    if isinstance(intent, AddTaskIntent):
        task = planner.add_task(intent.task)
        if task is None:
            return IntentResult(success=False, message="Parent task not found")
        return IntentResult(success=True, message=f"Added: {task.description}", data=_task_data(task))

    if isinstance(intent, CompleteTaskIntent):
        task = _resolve_task(planner, intent)
        if task is None:
            return _not_found(intent)
        result = planner.complete_task(task.id, intent.actual_minutes)
        message = f"Completed: {task.description} ({result.actual_minutes} min)"
        if result.next_task is not None:
            message += f". Next one on {result.next_task.scheduled_for_date.isoformat()}"
        return IntentResult(success=True, message=message, data=result.model_dump(mode="json"))

    if isinstance(intent, MoveTaskIntent):
        task = _resolve_task(planner, intent)
        if task is None:
            return _not_found(intent)
        if intent.destination == TaskStatus.TODAY:
            moved = planner.set_today(task.id)
        elif intent.destination == TaskStatus.TOMORROW:
            moved = planner.set_tomorrow(task.id)
        else:
            moved = planner.update_task(task.id, TaskUpdate(status=intent.destination))
        return IntentResult(
            success=True,
            message=f"Moved {task.description} to {intent.destination.value}",
            data=_task_data(moved),
        )

    if isinstance(intent, DeleteTaskIntent):
        task = _resolve_task(planner, intent)
        if task is None:
            return _not_found(intent)
        planner.delete_task(task.id)
        return IntentResult(success=True, message=f"Deleted: {task.description}", data={"id": task.id})

    if isinstance(intent, FindTaskIntent):
        matches = [t for t in planner.search(intent.keyword) if t.status != TaskStatus.DONE]
        if not matches:
            return IntentResult(success=False, message=f'No task found matching "{intent.keyword}"', data=[])
        noun = "task" if len(matches) == 1 else "tasks"
        return IntentResult(
            success=True,
            message=f"Found {len(matches)} {noun}; best match: {matches[0].description}",
            data=[_task_data(t) for t in matches],
        )

    if isinstance(intent, SuggestTop3Intent):
        suggestion = planner.apply_top3_suggestion() if intent.apply else planner.suggest_top3()
        names = ", ".join(c.task.description for c in suggestion.suggested) or "nothing"
        message = f"Top 3: {names} ({suggestion.used_minutes}/{suggestion.capacity} min)"
        if suggestion.message:
            message += f". {suggestion.message}"
        return IntentResult(success=True, message=message, data=suggestion.model_dump(mode="json"))

    if isinstance(intent, RunRoutineIntent):
        routine_id = intent.routine_id
        if not routine_id:
            wanted = intent.name.strip().lower()
            match = next((r for r in planner.list_routines() if r.name.lower() == wanted), None)
            routine_id = match.id if match else None
        created = planner.run_routine(routine_id) if routine_id else None
        if created is None:
            return IntentResult(success=False, message="Routine not found")
        return IntentResult(
            success=True,
            message=f"Added {len(created)} items to Today",
            data=[_task_data(t) for t in created],
        )

    if isinstance(intent, GetStatsIntent):
        stats = planner.get_today_stats()
        message = (
            f"{stats.total_tasks} tasks today ({stats.unrated_count} unrated, {stats.overdue_count} overdue); "
            f"Top 3 uses {stats.top3.total_buffered}/{stats.top3.capacity} min"
        )
        return IntentResult(success=True, message=message, data=stats.model_dump(mode="json"))

    if isinstance(intent, RerackIntent):
        if intent.mode == "completion":
            result = planner.rerack_after_completion(intent.completed_id, intent.locked_ids)
        else:
            result = planner.rerack_for_time_pressure(intent.locked_ids)
        message = f"Keeping {len(result.keep)} tasks, {len(result.overflow)} don't fit"
        if result.protected_overflow:
            message += " (protected tasks alone exceed the time left)"
        return IntentResult(success=True, message=message, data=result.model_dump(mode="json"))

    raise ValueError(f"Unsupported intent: {type(intent).__name__}")
