"""Tests for daily maintenance (rollover)."""

from datetime import date, timedelta

from battleplan.engine.rollover import plan_daily_maintenance
from battleplan.models.settings import SettingsUpdate
from battleplan.models.task import TaskCreate, TaskStatus

TODAY = date(2026, 10, 14)


def _minutes(mapping):
    return lambda task: mapping.get(task.id)


def _apply(tasks, plan):
    return [t.model_copy(update=plan.updates.get(t.id, {})) for t in tasks]


class TestPlanDailyMaintenance:
    """Test plan_daily_maintenance()."""

    def test_protected_promotion(self, make_task):
        due_soon = make_task(id="due", status=TaskStatus.NEXT, due_date=TODAY + timedelta(days=7))
        due_later = make_task(id="later", status=TaskStatus.NEXT, due_date=TODAY + timedelta(days=8))
        scheduled = make_task(id="sched", status=TaskStatus.SOMEDAY, scheduled_for_date=TODAY)

        plan = plan_daily_maintenance([due_soon, due_later, scheduled], TODAY, 126, _minutes({}))

        assert plan.updates["due"] == {"status": "today", "scheduled_for_date": TODAY}
        assert "sched" in plan.updates
        assert "later" not in plan.updates
        assert plan.result.rolled_count == 2

    def test_overdue_counted(self, make_task):
        overdue = make_task(id="late", status=TaskStatus.TODAY, scheduled_for_date=TODAY - timedelta(days=2))

        plan = plan_daily_maintenance([overdue], TODAY, 126, _minutes({}))
        assert plan.result.overdue_count == 1

    def test_stale_top3_cleared_unless_locked(self, make_task):
        yesterday = TODAY - timedelta(days=1)
        stale = make_task(id="stale", is_top3=True, top3_order=0, top3_date=yesterday)
        locked = make_task(id="locked", is_top3=True, top3_order=1, top3_date=yesterday, top3_locked=True)

        plan = plan_daily_maintenance([stale, locked], TODAY, 126, _minutes({}))

        assert plan.updates["stale"] == {"is_top3": False, "top3_order": None, "top3_date": None}
        assert "locked" not in plan.updates
        assert plan.result.cleared_top3_count == 1

    def test_top3_clearing_can_be_disabled(self, make_task):
        stale = make_task(is_top3=True, top3_date=TODAY - timedelta(days=1))

        plan = plan_daily_maintenance([stale], TODAY, 126, _minutes({}), auto_clear_top3=False)
        assert plan.updates == {}

    def test_capacity_aware_carryover(self, make_task):
        committed = make_task(id="committed", status=TaskStatus.TODAY)
        high = make_task(id="high", status=TaskStatus.TOMORROW, impact=5, consequences=4, friction=1)
        low = make_task(id="low", status=TaskStatus.TOMORROW, impact=2, consequences=2, friction=1)
        unestimated = make_task(id="unest", status=TaskStatus.TOMORROW)
        buffered = _minutes({"committed": 60, "high": 40, "low": 40})

        plan = plan_daily_maintenance([committed, high, low, unestimated], TODAY, 126, buffered)

        assert plan.updates["high"]["status"] == "today"
        assert plan.updates["unest"]["status"] == "today"
        assert "low" not in plan.updates
        assert plan.result.deferred_count == 1
        # Carryover is not a protected promotion
        assert plan.result.rolled_count == 0

    def test_dated_tomorrow_items_wait(self, make_task):
        dated = make_task(status=TaskStatus.TOMORROW, scheduled_for_date=TODAY + timedelta(days=1))

        plan = plan_daily_maintenance([dated], TODAY, 126, _minutes({}))
        assert plan.updates == {}

    def test_carryover_can_be_disabled(self, make_task):
        tomorrow = make_task(status=TaskStatus.TOMORROW)

        plan = plan_daily_maintenance([tomorrow], TODAY, 126, _minutes({}), auto_roll_tomorrow=False)
        assert plan.updates == {}

    def test_done_tasks_untouched(self, make_task):
        done = make_task(status=TaskStatus.DONE, due_date=TODAY, is_top3=True, top3_date=TODAY - timedelta(days=1))

        plan = plan_daily_maintenance([done], TODAY, 126, _minutes({}))
        assert plan.updates == {}

    def test_idempotent(self, make_task):
        tasks = [
            make_task(id="due", status=TaskStatus.NEXT, due_date=TODAY + timedelta(days=2)),
            make_task(id="stale", is_top3=True, top3_date=TODAY - timedelta(days=1)),
            make_task(id="tmrw", status=TaskStatus.TOMORROW),
        ]
        first = plan_daily_maintenance(tasks, TODAY, 126, _minutes({}))
        second = plan_daily_maintenance(_apply(tasks, first), TODAY, 126, _minutes({}))

        assert first.updates
        assert second.updates == {}


class TestPlannerMaintenance:
    """Daily maintenance through the planner."""

    def test_second_run_changes_nothing(self, planner, clock):
        task = planner.add_task(TaskCreate(description="Pay rent", status=TaskStatus.NEXT,
                                           due_date=clock.now.date() + timedelta(days=3)))
        planner.add_task(TaskCreate(description="Plan week", status=TaskStatus.TOMORROW))

        first = planner.run_daily_maintenance()
        snapshot = [t.model_dump() for t in planner.all_tasks()]
        second = planner.run_daily_maintenance()

        assert first.rolled_count == 1
        assert second.rolled_count == 0
        assert second.deferred_count == 0
        assert [t.model_dump() for t in planner.all_tasks()] == snapshot
        assert planner.get_task(task.id).status == TaskStatus.TODAY

    def test_respects_auto_roll_setting(self, planner):
        task = planner.add_task(TaskCreate(description="Plan week", status=TaskStatus.TOMORROW))
        planner.update_settings(SettingsUpdate(auto_roll_tomorrow_to_today=False))

        planner.run_daily_maintenance()
        assert planner.get_task(task.id).status == TaskStatus.TOMORROW
