"""FastAPI web application for Battle Plan."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from battleplan.config import BACKUP_DIR, BACKUP_ENABLED, local_now
from battleplan.database.database import SessionLocal, get_db, init_db
from battleplan.database.storage import Storage
from battleplan.models.plans import (
    CapacitySnapshot,
    CompletionResult,
    Diagnostics,
    ImportResult,
    MaintenanceResult,
    RerackResult,
    ScoredTask,
    Top3Rejection,
    Top3Stats,
    Top3Suggestion,
    TodayStats,
)
from battleplan.models.routine import Routine, RoutineCreate, RoutineUpdate
from battleplan.models.settings import PlannerSettings, SettingsUpdate
from battleplan.models.task import Task, TaskCreate, TaskStatus, TaskUpdate
from battleplan.service.backup import AutoBackup
from battleplan.service.intents import Intent, IntentResult, execute_intent
from battleplan.service.planner import Planner

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# Process-wide auto-backup (None when disabled)
auto_backup: Optional[AutoBackup] = AutoBackup(SessionLocal, BACKUP_DIR) if BACKUP_ENABLED else None


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    # Do not lose the last burst of edits on shutdown
    if auto_backup is not None and auto_backup.pending:
        auto_backup.cancel()
        auto_backup.run_now()


# Initialize FastAPI app
app = FastAPI(
    title="Battle Plan API",
    description="Rate tasks, pick today's Top 3 and rerack what still fits in the day",
    version=VERSION,
    lifespan=lifespan,
)


# ----------------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------------

def get_auto_backup() -> Optional[AutoBackup]:
    return auto_backup


def get_clock() -> Callable[[], datetime]:
    return local_now


def get_planner(
    db: Session = Depends(get_db),
    backup: Optional[AutoBackup] = Depends(get_auto_backup),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> Planner:
    """Planner bound to the request's database session."""
    return Planner(Storage.from_session(db), now=clock, backup=backup)


def _found(value, what: str = "Task"):
    if value is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return value


# ----------------------------------------------------------------------
# Request models
# ----------------------------------------------------------------------

class CompleteRequest(BaseModel):
    """Body for completing a task."""
    actual_minutes: Optional[int] = Field(None, ge=0)
    skip_recurrence: bool = False


class Top3Request(BaseModel):
    """Body for changing Top-3 membership."""
    make_top3: bool = True
    manual_toggle: bool = True


class RerackRequest(BaseModel):
    """Body for the rerack endpoints."""
    completed_id: Optional[str] = None
    locked_ids: List[str] = Field(default_factory=list)


class CapacityOverrideRequest(BaseModel):
    """Body for today's capacity override."""
    minutes: int = Field(..., ge=0, le=1440)


# ----------------------------------------------------------------------
# Health
# ----------------------------------------------------------------------

@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION}


# ----------------------------------------------------------------------
# Tasks
# ----------------------------------------------------------------------

@app.get("/tasks", response_model=List[Task])
async def list_tasks(
    status: Optional[TaskStatus] = Query(None),
    planner: Planner = Depends(get_planner),
):
    """Top-level tasks with a given status (all statuses when omitted), in list order."""
    return planner.get_by_status(status.value if status else None)


@app.get("/tasks/today", response_model=List[Task])
async def today_tasks(planner: Planner = Depends(get_planner)):
    return planner.get_today_items()


@app.get("/tasks/inbox", response_model=List[Task])
async def inbox_tasks(planner: Planner = Depends(get_planner)):
    return planner.get_inbox()


@app.get("/tasks/tomorrow", response_model=List[Task])
async def tomorrow_tasks(planner: Planner = Depends(get_planner)):
    return planner.get_tomorrow_items()


@app.get("/tasks/today/scored", response_model=List[ScoredTask])
async def scored_today_tasks(planner: Planner = Depends(get_planner)):
    """Today list with scores, badges, tier and buffered minutes."""
    return planner.get_scored_today_items()


@app.get("/tasks/search", response_model=List[Task])
async def search_tasks(
    q: str = Query(..., min_length=1),
    status: Optional[TaskStatus] = Query(None),
    planner: Planner = Depends(get_planner),
):
    """Case-insensitive search over description and next action."""
    return planner.search(q, status.value if status else None)


@app.post("/tasks", response_model=Task, status_code=201)
async def create_task(request: TaskCreate, planner: Planner = Depends(get_planner)):
    """Add a task (a subtask when parent_id is given)."""
    return _found(planner.add_task(request), "Parent task")


@app.get("/tasks/{task_id}", response_model=Task)
async def get_task(task_id: str, planner: Planner = Depends(get_planner)):
    return _found(planner.get_task(task_id))


@app.patch("/tasks/{task_id}", response_model=Task)
async def update_task(task_id: str, update: TaskUpdate, planner: Planner = Depends(get_planner)):
    """Update the fields present in the body."""
    return _found(planner.update_task(task_id, update))


@app.delete("/tasks/{task_id}")
async def delete_task(task_id: str, planner: Planner = Depends(get_planner)):
    """Delete a task and its subtasks."""
    if not planner.delete_task(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"deleted": task_id}


@app.get("/tasks/{task_id}/score", response_model=ScoredTask)
async def score_task(task_id: str, planner: Planner = Depends(get_planner)):
    return planner.score_task(_found(planner.get_task(task_id)))


@app.get("/tasks/{task_id}/subtasks", response_model=List[Task])
async def list_subtasks(task_id: str, planner: Planner = Depends(get_planner)):
    _found(planner.get_task(task_id))
    return planner.get_subtasks(task_id)


@app.post("/tasks/{task_id}/complete", response_model=CompletionResult)
async def complete_task(
    task_id: str,
    request: Optional[CompleteRequest] = None,
    planner: Planner = Depends(get_planner),
):
    """Complete a task, record calibration and spawn the next recurrence."""
    request = request or CompleteRequest()
    return _found(planner.complete_task(task_id, request.actual_minutes, request.skip_recurrence))


@app.post("/tasks/{task_id}/start", response_model=Task)
async def start_task(task_id: str, planner: Planner = Depends(get_planner)):
    return _found(planner.start_task(task_id))


@app.post("/tasks/{task_id}/today", response_model=Task)
async def move_to_today(task_id: str, planner: Planner = Depends(get_planner)):
    return _found(planner.set_today(task_id))


@app.post("/tasks/{task_id}/tomorrow", response_model=Task)
async def move_to_tomorrow(task_id: str, planner: Planner = Depends(get_planner)):
    return _found(planner.set_tomorrow(task_id))


@app.post("/tasks/{task_id}/preset/{preset_key}", response_model=Task)
async def apply_preset(task_id: str, preset_key: str, planner: Planner = Depends(get_planner)):
    """Apply a rating preset."""
    return _found(planner.apply_preset(task_id, preset_key), "Task or preset")


@app.put("/tasks/{task_id}/top3", response_model=Task)
async def set_top3(task_id: str, request: Top3Request, planner: Planner = Depends(get_planner)):
    """Add to or remove from today's Top 3 (409 on MONSTER_LIMIT / TOP3_FULL)."""
    result = _found(planner.set_top3(task_id, request.make_top3, request.manual_toggle))
    if isinstance(result, Top3Rejection):
        raise HTTPException(status_code=409, detail=result.model_dump())
    return result


@app.get("/presets")
async def list_presets(planner: Planner = Depends(get_planner)) -> Dict[str, Dict[str, Any]]:
    return planner.get_presets()


# ----------------------------------------------------------------------
# Top 3
# ----------------------------------------------------------------------

@app.get("/top3", response_model=List[Task])
async def top3_items(planner: Planner = Depends(get_planner)):
    return planner.get_top3_items()


@app.get("/top3/suggestion", response_model=Top3Suggestion)
async def top3_suggestion(planner: Planner = Depends(get_planner)):
    """Read-only suggestion."""
    return planner.suggest_top3()


@app.post("/top3/apply", response_model=Top3Suggestion)
async def apply_top3(planner: Planner = Depends(get_planner)):
    """Replace today's unlocked Top 3 with a fresh suggestion."""
    return planner.apply_top3_suggestion()


@app.get("/top3/stats", response_model=Top3Stats)
async def top3_stats(planner: Planner = Depends(get_planner)):
    return planner.get_top3_stats()


# ----------------------------------------------------------------------
# Rerack, maintenance, capacity and stats
# ----------------------------------------------------------------------

@app.post("/rerack/completion", response_model=RerackResult)
async def rerack_after_completion(
    request: Optional[RerackRequest] = None,
    planner: Planner = Depends(get_planner),
):
    request = request or RerackRequest()
    return planner.rerack_after_completion(request.completed_id, request.locked_ids)


@app.post("/rerack/time-pressure", response_model=RerackResult)
async def rerack_for_time_pressure(
    request: Optional[RerackRequest] = None,
    planner: Planner = Depends(get_planner),
):
    request = request or RerackRequest()
    return planner.rerack_for_time_pressure(request.locked_ids)


@app.post("/maintenance", response_model=MaintenanceResult)
async def run_maintenance(planner: Planner = Depends(get_planner)):
    """Daily rollover (idempotent)."""
    return planner.run_daily_maintenance()


@app.get("/capacity", response_model=CapacitySnapshot)
async def capacity(planner: Planner = Depends(get_planner)):
    return planner.get_capacity_snapshot()


@app.put("/capacity/override", response_model=PlannerSettings)
async def set_capacity_override(request: CapacityOverrideRequest, planner: Planner = Depends(get_planner)):
    return planner.set_capacity_override(request.minutes)


@app.delete("/capacity/override", response_model=PlannerSettings)
async def clear_capacity_override(planner: Planner = Depends(get_planner)):
    return planner.clear_capacity_override()


@app.get("/stats/today", response_model=TodayStats)
async def today_stats(planner: Planner = Depends(get_planner)):
    return planner.get_today_stats()


@app.get("/diagnostics", response_model=Diagnostics)
async def diagnostics(planner: Planner = Depends(get_planner)):
    return planner.run_diagnostics()


# ----------------------------------------------------------------------
# Settings
# ----------------------------------------------------------------------

@app.get("/settings", response_model=PlannerSettings)
async def get_settings(planner: Planner = Depends(get_planner)):
    return planner.get_settings()


@app.patch("/settings", response_model=PlannerSettings)
async def update_settings(update: SettingsUpdate, planner: Planner = Depends(get_planner)):
    return planner.update_settings(update)


# ----------------------------------------------------------------------
# Routines
# ----------------------------------------------------------------------

@app.get("/routines", response_model=List[Routine])
async def list_routines(planner: Planner = Depends(get_planner)):
    return planner.list_routines()


@app.post("/routines", response_model=Routine, status_code=201)
async def create_routine(request: RoutineCreate, planner: Planner = Depends(get_planner)):
    return planner.add_routine(request)


@app.get("/routines/{routine_id}", response_model=Routine)
async def get_routine(routine_id: str, planner: Planner = Depends(get_planner)):
    return _found(planner.get_routine(routine_id), "Routine")


@app.patch("/routines/{routine_id}", response_model=Routine)
async def update_routine(routine_id: str, update: RoutineUpdate, planner: Planner = Depends(get_planner)):
    return _found(planner.update_routine(routine_id, update), "Routine")


@app.delete("/routines/{routine_id}")
async def delete_routine(routine_id: str, planner: Planner = Depends(get_planner)):
    if not planner.delete_routine(routine_id):
        raise HTTPException(status_code=404, detail="Routine not found")
    return {"deleted": routine_id}


@app.post("/routines/{routine_id}/run", response_model=List[Task])
async def run_routine(routine_id: str, planner: Planner = Depends(get_planner)):
    """Create today's tasks from a routine."""
    return _found(planner.run_routine(routine_id), "Routine")


# ----------------------------------------------------------------------
# Export / import and intents
# ----------------------------------------------------------------------

@app.get("/export")
async def export_data(planner: Planner = Depends(get_planner)) -> Dict[str, Any]:
    """Full snapshot of all data."""
    return planner.export_snapshot()


@app.post("/import", response_model=ImportResult)
async def import_data(data: Dict[str, Any] = Body(...), planner: Planner = Depends(get_planner)):
    """Replace all data with a snapshot (400 when the snapshot is rejected)."""
    result = planner.import_snapshot(data)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.model_dump())
    return result


@app.post("/intents", response_model=IntentResult)
async def run_intent(intent: Intent, planner: Planner = Depends(get_planner)):
    """Execute a structured (already parsed) intent."""
    return execute_intent(planner, intent)
