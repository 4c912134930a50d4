"""Tests for completing tasks and recurrence date math."""

from datetime import date, datetime, timedelta

import pytest

from battleplan.models.task import TaskCreate, TaskStatus
from battleplan.recurrence.next_occurrence import next_occurrence

SATURDAY = date(2026, 10, 17)


class TestNextOccurrence:
    """Test next_occurrence()."""

    def test_daily(self):
        assert next_occurrence("daily", None, SATURDAY) == SATURDAY + timedelta(days=1)

    def test_weekly_friday_from_saturday(self):
        # recurrence_day uses 0=Sunday, so 5 is Friday
        assert next_occurrence("weekly", 5, SATURDAY) == date(2026, 10, 23)

    def test_weekly_same_weekday_is_a_week_out(self):
        assert next_occurrence("weekly", 6, SATURDAY) == SATURDAY + timedelta(days=7)

    def test_weekly_without_day_keeps_weekday(self):
        assert next_occurrence("weekly", None, SATURDAY) == SATURDAY + timedelta(days=7)

    @pytest.mark.parametrize("today,day,expected", [
        (date(2026, 1, 31), 31, date(2026, 2, 28)),
        (date(2028, 1, 31), 31, date(2028, 2, 29)),
        (date(2026, 3, 31), 31, date(2026, 4, 30)),
        (date(2026, 12, 15), 15, date(2027, 1, 15)),
    ])
    def test_monthly_clamps_to_month_end(self, today, day, expected):
        assert next_occurrence("monthly", day, today) == expected

    def test_monthly_without_day_keeps_day_of_month(self):
        assert next_occurrence("monthly", None, date(2026, 10, 17)) == date(2026, 11, 17)


class TestCompleteTask:
    """Test Planner.complete_task()."""

    def test_marks_done_and_records_calibration(self, planner, clock, rated_fields):
        task = planner.add_task(TaskCreate(description="Write report", status=TaskStatus.TODAY,
                                           tag="Business", **rated_fields))
        planner.set_top3(task.id)

        result = planner.complete_task(task.id, actual_minutes=45)

        assert result.actual_minutes == 45
        assert result.calibration_recorded is True
        assert result.next_task is None
        done = planner.get_task(task.id)
        assert done.status == TaskStatus.DONE
        assert done.actual_bucket == 45
        assert done.completed_at == clock.now
        assert done.is_top3 is False
        assert done.top3_locked is False

        entries = planner.storage.calibration.get_all()
        assert [(e.tag, e.estimate_bucket, e.actual_bucket) for e in entries] == [("Business", 30, 45)]

    def test_elapsed_time_from_start(self, planner, clock):
        task = planner.add_task(TaskCreate(description="Mow lawn", estimate_bucket=60))
        planner.start_task(task.id)
        clock.now = clock.now + timedelta(minutes=44, seconds=40)

        result = planner.complete_task(task.id)
        assert result.actual_minutes == 45
        assert planner.get_task(task.id).started_at is None

    def test_implausible_elapsed_falls_back_to_estimate(self, planner, clock):
        task = planner.add_task(TaskCreate(description="Mow lawn", estimate_bucket=60))
        planner.start_task(task.id)
        clock.now = clock.now + timedelta(hours=9)

        assert planner.complete_task(task.id).actual_minutes == 60

    def test_no_estimate_no_calibration(self, planner):
        task = planner.add_task(TaskCreate(description="Quick call"))

        result = planner.complete_task(task.id)
        assert result.actual_minutes == 0
        assert result.calibration_recorded is False
        assert planner.storage.calibration.get_all() == []

    def test_weekly_recurrence_spawns_next_instance(self, planner, clock, rated_fields):
        clock.now = datetime(2026, 10, 17, 9, 0)
        task = planner.add_task(TaskCreate(description="Weekly review", status=TaskStatus.TODAY,
                                           recurrence="weekly", recurrence_day=5, due_date=clock.now.date(),
                                           **rated_fields))

        result = planner.complete_task(task.id)

        nxt = result.next_task
        assert nxt is not None
        assert nxt.id != task.id
        assert nxt.status == TaskStatus.NEXT
        assert nxt.scheduled_for_date == date(2026, 10, 23)
        assert nxt.recurrence == "weekly"
        assert nxt.recurrence_day == 5
        assert nxt.impact == rated_fields["impact"]
        assert nxt.due_date is None
        assert nxt.is_top3 is False

    def test_skip_recurrence(self, planner):
        task = planner.add_task(TaskCreate(description="Water plants", recurrence="daily"))

        result = planner.complete_task(task.id, skip_recurrence=True)
        assert result.next_task is None
        assert len(planner.all_tasks()) == 1

    def test_completing_twice_is_harmless(self, planner, rated_fields):
        task = planner.add_task(TaskCreate(description="Report", recurrence="daily", **rated_fields))
        planner.complete_task(task.id, actual_minutes=30)

        again = planner.complete_task(task.id, actual_minutes=90)

        assert again.actual_minutes == 30
        assert again.next_task is None
        assert len(planner.storage.calibration.get_all()) == 1
        assert len(planner.all_tasks()) == 2

    def test_missing_task(self, planner):
        assert planner.complete_task("missing") is None
