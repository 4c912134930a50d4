"""Data models for Battle Plan."""

from battleplan.models.task import Task, TaskCreate, TaskUpdate, TaskStatus, TaskTag, Confidence, Recurrence
from battleplan.models.calibration import CalibrationEntry
from battleplan.models.settings import PlannerSettings, SettingsUpdate
from battleplan.models.routine import Routine, RoutineCreate, RoutineUpdate, PlainTextItem, TemplateItem

__all__ = [
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "TaskStatus",
    "TaskTag",
    "Confidence",
    "Recurrence",
    "CalibrationEntry",
    "PlannerSettings",
    "SettingsUpdate",
    "Routine",
    "RoutineCreate",
    "RoutineUpdate",
    "PlainTextItem",
    "TemplateItem",
]
