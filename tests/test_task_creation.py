"""Tests for task creation defaults and request validation."""

import pytest
from datetime import date, datetime
from pydantic import ValidationError

from battleplan.models.task import Task, TaskCreate, TaskStatus, TaskUpdate
from battleplan.models.task_factory import (
    create_task_base,
    create_task_defaults,
    create_task_from_request,
    generate_id,
)

FIXED_NOW = datetime(2026, 10, 14, 10, 0)


class TestTaskCreationDefaults:
    """Test that task creation uses correct default values."""

    def test_default_task_values(self, sample_task_base):
        task = Task(**{**sample_task_base, "status": TaskStatus.INBOX})

        assert task.status == TaskStatus.INBOX
        assert task.tag is None
        assert task.estimate_bucket is None
        assert task.is_top3 is False
        assert task.top3_locked is False
        assert task.recurrence is None
        assert task.parent_id is None

    def test_enum_values_are_stored_as_strings(self, sample_task_base):
        task = Task(**{**sample_task_base, "tag": "Business", "confidence": "low"})

        assert task.status == "today"
        assert task.tag == "Business"
        assert task.confidence == "low"

    def test_factory_defaults(self):
        task = create_task_base("  Water plants ", FIXED_NOW)

        assert task.description == "Water plants"
        assert task.status == TaskStatus.INBOX
        assert task.created_at == FIXED_NOW
        assert task.updated_at == FIXED_NOW
        assert len(task.id) == 32

    def test_factory_ignores_none_overrides(self):
        task = create_task_base("Task", FIXED_NOW, status=None, tag=None, estimate_bucket=15)

        assert task.status == TaskStatus.INBOX
        assert task.estimate_bucket == 15

    def test_factory_explicit_id(self):
        assert create_task_base("Task", FIXED_NOW, task_id="abc").id == "abc"

    def test_generated_ids_are_unique(self):
        assert len({generate_id() for _ in range(100)}) == 100

    def test_defaults_are_fresh_dicts(self):
        defaults = create_task_defaults()
        defaults["status"] = TaskStatus.DONE
        assert create_task_defaults()["status"] == TaskStatus.INBOX


class TestTaskCreateRequest:
    """Validation of incoming task fields."""

    def test_from_request(self):
        request = TaskCreate(
            description="Quarterly taxes",
            status="next",
            tag="Business",
            impact=5,
            due_date=date(2026, 10, 20),
        )

        task = create_task_from_request(request, FIXED_NOW)

        assert task.status == TaskStatus.NEXT
        assert task.tag == "Business"
        assert task.impact == 5
        assert task.due_date == date(2026, 10, 20)
        assert task.is_top3 is False

    def test_description_is_stripped(self):
        assert TaskCreate(description="  Call mom  ").description == "Call mom"

    @pytest.mark.parametrize("fields", [
        {"description": ""},
        {"description": "   "},
        {"description": "x", "impact": 0},
        {"description": "x", "friction": 6},
        {"description": "x", "time_criticality": -1},
        {"description": "x", "estimate_bucket": 20},
        {"description": "x", "tag": "Garden"},
        {"description": "x", "recurrence": "monthly", "recurrence_day": 0},
        {"description": "x", "recurrence": "weekly", "recurrence_day": 7},
        {"description": "x", "top3_locked": True},
    ])
    def test_invalid_requests(self, fields):
        with pytest.raises(ValidationError):
            TaskCreate(**fields)

    def test_lmt_zero_is_allowed(self):
        request = TaskCreate(description="x", leverage=0, energy_match=0, time_criticality=0)
        assert request.leverage == 0

    def test_update_tracks_only_set_fields(self):
        update = TaskUpdate(impact=3, due_date=None)

        assert update.changes() == {"impact": 3, "due_date": None}

    def test_update_rejects_top3_fields(self):
        with pytest.raises(ValidationError):
            TaskUpdate(is_top3=True)
