"""SQLAlchemy database models for Battle Plan."""

from datetime import datetime
from typing import Type, TypeVar, Union
import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, JSON, String

from battleplan.database.database import Base
from battleplan.models.task import Confidence, Recurrence, TaskStatus, TaskTag

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T, None]) -> Union[str, None]:
    """Convert enum to string value (handles enum, string and None).

    Args:
        enum_obj: Enum instance, string value or None

    Returns:
        String value of the enum, the string itself, or None
    """
    if enum_obj is None:
        return None
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value)
    except ValueError:
        pass
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        pass
    # Case-insensitive match for mixed-case values (e.g. tags)
    for member in enum_class:
        if str(member.value).lower() == str(value).lower():
            return member
    return default


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)

    # Basic fields
    description = Column(String, nullable=False)
    status = Column(String, nullable=False, default=TaskStatus.INBOX.value, index=True)
    tag = Column(String, nullable=True, index=True)
    next_action = Column(String, nullable=True)

    # ACE + LMT ratings
    impact = Column(Integer, nullable=True)
    consequences = Column(Integer, nullable=True)
    friction = Column(Integer, nullable=True)
    leverage = Column(Integer, nullable=True)
    energy_match = Column(Integer, nullable=True)
    time_criticality = Column(Integer, nullable=True)

    # Time planning
    estimate_bucket = Column(Integer, nullable=True)
    confidence = Column(String, nullable=True)
    actual_bucket = Column(Integer, nullable=True)

    # Scheduling
    scheduled_for_date = Column(Date, nullable=True, index=True)
    due_date = Column(Date, nullable=True, index=True)

    # Top 3
    is_top3 = Column(Boolean, nullable=False, default=False, index=True)
    top3_order = Column(Integer, nullable=True)
    top3_date = Column(Date, nullable=True)
    top3_locked = Column(Boolean, nullable=False, default=False)

    # Recurrence
    recurrence = Column(String, nullable=True)
    recurrence_day = Column(Integer, nullable=True)

    # Hierarchy (no FK: subtasks are deleted by the planner, imports may arrive unordered)
    parent_id = Column(String, nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from battleplan.models.task import Task

        tag = value_to_enum(self.tag, TaskTag, None)
        confidence = value_to_enum(self.confidence, Confidence, None)
        recurrence = value_to_enum(self.recurrence, Recurrence, None)

        return Task(
            id=self.id,
            description=self.description,
            status=value_to_enum(self.status, TaskStatus, TaskStatus.INBOX),
            tag=tag,
            next_action=self.next_action,
            impact=self.impact,
            consequences=self.consequences,
            friction=self.friction,
            leverage=self.leverage,
            energy_match=self.energy_match,
            time_criticality=self.time_criticality,
            estimate_bucket=self.estimate_bucket,
            confidence=confidence,
            actual_bucket=self.actual_bucket,
            scheduled_for_date=self.scheduled_for_date,
            due_date=self.due_date,
            is_top3=bool(self.is_top3),
            top3_order=self.top3_order,
            top3_date=self.top3_date,
            top3_locked=bool(self.top3_locked),
            recurrence=recurrence,
            recurrence_day=self.recurrence_day,
            parent_id=self.parent_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        row = cls(id=task.id)
        row.apply(task)
        return row

    def apply(self, task) -> None:
        """Copy every field of a Pydantic task onto this row."""
        # Pydantic with use_enum_values=True returns strings; handle both
        self.description = task.description
        self.status = enum_to_value(task.status)
        self.tag = enum_to_value(task.tag)
        self.next_action = task.next_action
        self.impact = task.impact
        self.consequences = task.consequences
        self.friction = task.friction
        self.leverage = task.leverage
        self.energy_match = task.energy_match
        self.time_criticality = task.time_criticality
        self.estimate_bucket = task.estimate_bucket
        self.confidence = enum_to_value(task.confidence)
        self.actual_bucket = task.actual_bucket
        self.scheduled_for_date = task.scheduled_for_date
        self.due_date = task.due_date
        self.is_top3 = task.is_top3
        self.top3_order = task.top3_order
        self.top3_date = task.top3_date
        self.top3_locked = task.top3_locked
        self.recurrence = enum_to_value(task.recurrence)
        self.recurrence_day = task.recurrence_day
        self.parent_id = task.parent_id
        self.created_at = task.created_at
        self.updated_at = task.updated_at
        self.started_at = task.started_at
        self.completed_at = task.completed_at


class CalibrationEntryDB(Base):
    """Database model for an append-only calibration entry."""

    __tablename__ = "calibration_entries"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    tag = Column(String, nullable=False, index=True)
    estimate_bucket = Column(Integer, nullable=False)
    actual_bucket = Column(Integer, nullable=False)
    completed_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from battleplan.models.calibration import CalibrationEntry
        return CalibrationEntry(
            id=self.id,
            tag=self.tag,
            estimate_bucket=self.estimate_bucket,
            actual_bucket=self.actual_bucket,
            completed_at=self.completed_at,
        )

    @classmethod
    def from_pydantic(cls, entry):
        """Create database model from Pydantic model."""
        return cls(
            id=entry.id,
            tag=entry.tag,
            estimate_bucket=entry.estimate_bucket,
            actual_bucket=entry.actual_bucket,
            completed_at=entry.completed_at,
        )


class SettingDB(Base):
    """One planner setting (JSON value keyed by name)."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class RoutineDB(Base):
    """Database model for a routine (items stored as a JSON list)."""

    __tablename__ = "routines"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column(String, nullable=False)
    items = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from battleplan.models.routine import Routine
        return Routine(
            id=self.id,
            name=self.name,
            items=self.items or [],
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, routine):
        """Create database model from Pydantic model."""
        return cls(
            id=routine.id,
            name=routine.name,
            items=[item.model_dump(mode="json") for item in routine.items],
            created_at=routine.created_at,
        )
