"""Tests for reracking the rest of the day."""

from datetime import date, timedelta

import pytest

from battleplan.engine.rerack import (
    REASON_LOW_DENSITY,
    REASON_NO_TIME,
    REASON_TOO_LONG,
    is_protected,
    rerack,
    value_density,
)
from battleplan.models.task import TaskCreate, TaskStatus

TODAY = date(2026, 10, 14)


def _minutes(mapping):
    return lambda task: mapping[task.id]


@pytest.fixture
def day_tasks(make_task):
    """One protected task and three flexible ones with distinct densities."""
    lmt = {"estimate_bucket": 30, "confidence": "high"}
    return {
        "due": make_task(id="due", due_date=TODAY, impact=3, consequences=3, friction=3,
                         leverage=0, energy_match=0, time_criticality=0, **lmt),
        "quick": make_task(id="quick", impact=5, consequences=4, friction=1,
                           leverage=2, energy_match=2, time_criticality=2, **lmt),
        "long": make_task(id="long", impact=3, consequences=2, friction=1,
                          leverage=0, energy_match=1, time_criticality=0, **lmt),
        "meh": make_task(id="meh", impact=1, consequences=1, friction=1,
                         leverage=0, energy_match=0, time_criticality=0, **lmt),
    }


class TestValueDensity:
    """Test value_density()."""

    def test_short_tasks_get_boosted(self):
        # 10 / 10 x (1 + 10/10)
        assert value_density(10, 10) == pytest.approx(2.0)
        # 10 / 100 x (1 + 10/100)
        assert value_density(10, 100) == pytest.approx(0.11)

    def test_zero_minutes(self):
        assert value_density(7, 0) == 7.0


class TestRerack:
    """Test rerack()."""

    def test_protected_first_then_density(self, day_tasks):
        buffered = _minutes({"due": 30, "quick": 15, "long": 60, "meh": 30})

        result = rerack(list(day_tasks.values()), TODAY, 60, buffered)

        assert [e.task.id for e in result.keep] == ["due", "quick"]
        assert result.keep[0].protected is True
        assert result.protected_minutes == 30
        assert result.used_minutes == 45
        assert result.remaining_minutes == 15

        reasons = {e.task.id: e.reason for e in result.overflow}
        assert reasons == {"long": REASON_TOO_LONG, "meh": REASON_LOW_DENSITY}

    def test_flexible_never_exceed_ceiling(self, day_tasks):
        buffered = _minutes({"due": 30, "quick": 15, "long": 60, "meh": 30})

        result = rerack(list(day_tasks.values()), TODAY, 100, buffered)

        flexible = sum(e.buffered_minutes for e in result.keep if not e.protected)
        assert flexible <= 100 - result.protected_minutes

    def test_protected_overflow(self, day_tasks):
        buffered = _minutes({"due": 30, "quick": 15, "long": 60, "meh": 30})

        result = rerack([day_tasks["due"], day_tasks["quick"]], TODAY, 20, buffered)

        assert result.protected_overflow is True
        assert [e.task.id for e in result.keep] == ["due"]
        assert result.overflow[0].task.id == "quick"

    def test_negative_capacity_is_zero(self, day_tasks):
        result = rerack([day_tasks["quick"]], TODAY, -30, _minutes({"quick": 15}))

        assert result.capacity == 0
        assert result.keep == []

    def test_unrated_and_excluded(self, make_task, day_tasks):
        unrated = make_task(id="unrated")

        result = rerack([unrated, day_tasks["quick"]], TODAY, 60, _minutes({"quick": 15}), exclude_id="quick")

        assert [t.id for t in result.unrated] == ["unrated"]
        assert result.keep == []
        assert result.overflow == []

    def test_caller_locked_ids_are_protected(self, day_tasks):
        result = rerack([day_tasks["meh"]], TODAY, 0, _minutes({"meh": 30}), locked_ids=["meh"])

        assert result.keep[0].protected is True
        assert result.protected_overflow is True

    def test_is_protected(self, make_task):
        assert is_protected(make_task(due_date=TODAY), TODAY) is True
        assert is_protected(make_task(is_top3=True, top3_date=TODAY, top3_locked=True), TODAY) is True
        assert is_protected(make_task(is_top3=True, top3_date=TODAY), TODAY) is False
        assert is_protected(make_task(id="x"), TODAY, ["x"]) is True


class TestPlannerRerack:
    """Rerack through the planner."""

    def _add(self, planner, description, **fields):
        return planner.add_task(TaskCreate(description=description, status=TaskStatus.TODAY, **fields))

    def test_after_completion_reports_overrun(self, planner, rated_fields):
        done = self._add(planner, "Report", **rated_fields)
        other = self._add(planner, "Email", **rated_fields)
        planner.complete_task(done.id, actual_minutes=50)

        result = planner.rerack_after_completion(done.id)

        assert result.completed_id == done.id
        assert result.overrun_minutes == 20
        # 126 usable minus 50 consumed
        assert result.capacity == 76
        assert [e.task.id for e in result.keep] == [other.id]

    def test_time_pressure_uses_wall_clock(self, planner, clock, rated_fields):
        self._add(planner, "Email", **rated_fields)
        clock.now = clock.now.replace(hour=17, minute=40)

        result = planner.rerack_for_time_pressure()

        assert result.capacity == 20
        assert result.keep == []
        assert result.overflow[0].reason == REASON_TOO_LONG

    def test_time_pressure_after_hours(self, planner, clock, rated_fields):
        self._add(planner, "Email", **rated_fields)
        clock.now = clock.now.replace(hour=20)

        result = planner.rerack_for_time_pressure()
        assert result.capacity == 0
        assert len(result.overflow) == 1


def test_reason_constants_are_human_readable():
    assert REASON_NO_TIME == "not enough time left today"
