"""Tests for planner task, view and routine operations."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from battleplan.models.routine import PlainTextItem, RoutineCreate, RoutineUpdate, TemplateItem
from battleplan.models.task import TaskCreate, TaskStatus, TaskUpdate


class TestTaskOperations:
    """Add, update, delete and move tasks."""

    def test_add_task_defaults(self, planner, clock):
        task = planner.add_task(TaskCreate(description="  Buy milk  "))

        assert task.description == "Buy milk"
        assert task.status == TaskStatus.INBOX
        assert task.created_at == clock.now
        assert task.is_top3 is False

    def test_subtask_needs_existing_parent(self, planner):
        assert planner.add_task(TaskCreate(description="Orphan", parent_id="missing")) is None

    def test_update_only_touches_set_fields(self, planner, clock):
        task = planner.add_task(TaskCreate(description="Draft", impact=3, next_action="Open doc"))
        clock.now = clock.now + timedelta(minutes=5)

        updated = planner.update_task(task.id, TaskUpdate(impact=5, next_action=None))

        assert updated.impact == 5
        assert updated.next_action is None
        assert updated.description == "Draft"
        assert updated.updated_at == clock.now

    def test_update_ignores_null_description(self, planner):
        task = planner.add_task(TaskCreate(description="Draft"))
        assert planner.update_task(task.id, TaskUpdate(description=None)).description == "Draft"

    def test_update_missing_task(self, planner):
        assert planner.update_task("missing", TaskUpdate(impact=2)) is None

    def test_delete_cascades_to_subtasks(self, planner):
        parent = planner.add_task(TaskCreate(description="Move house"))
        child = planner.add_task(TaskCreate(description="Pack kitchen", parent_id=parent.id))
        grandchild = planner.add_task(TaskCreate(description="Buy boxes", parent_id=child.id))
        other = planner.add_task(TaskCreate(description="Unrelated"))

        assert planner.delete_task(parent.id) is True
        assert [t.id for t in planner.all_tasks()] == [other.id]
        assert planner.get_task(grandchild.id) is None
        assert planner.delete_task(parent.id) is False

    def test_set_today_and_tomorrow(self, planner, today):
        task = planner.add_task(TaskCreate(description="Dentist"))
        planner.set_today(task.id)
        planner.set_top3(task.id)

        moved = planner.set_tomorrow(task.id)

        assert moved.status == TaskStatus.TOMORROW
        assert moved.scheduled_for_date == today + timedelta(days=1)
        assert moved.is_top3 is False
        assert planner.set_today(task.id).scheduled_for_date == today

    def test_apply_preset(self, planner):
        task = planner.add_task(TaskCreate(description="Chase invoice"))

        updated = planner.apply_preset(task.id, "waiting-on-others")

        assert updated.status == TaskStatus.WAITING
        assert (updated.impact, updated.consequences, updated.friction) == (3, 3, 2)
        assert updated.estimate_bucket == 15
        assert updated.confidence == "high"
        assert planner.apply_preset(task.id, "nope") is None
        assert "quick-win" in planner.get_presets()

    def test_find_by_keyword_skips_done(self, planner):
        done = planner.add_task(TaskCreate(description="Call mom", impact=5, consequences=5, friction=1))
        planner.complete_task(done.id)
        open_task = planner.add_task(TaskCreate(description="Call plumber"))

        assert planner.find_by_keyword("call").id == open_task.id
        assert planner.find_by_keyword("nothing") is None


class TestViews:
    """List views."""

    def test_today_view(self, planner, today):
        scheduled = planner.add_task(TaskCreate(description="Scheduled", status=TaskStatus.NEXT,
                                                scheduled_for_date=today))
        marked = planner.add_task(TaskCreate(description="Marked", status=TaskStatus.TODAY))
        planner.add_task(TaskCreate(description="Sub", status=TaskStatus.TODAY, parent_id=marked.id))
        planner.add_task(TaskCreate(description="Later", status=TaskStatus.NEXT,
                                    scheduled_for_date=today + timedelta(days=2)))

        assert {t.id for t in planner.get_today_items()} == {scheduled.id, marked.id}

    def test_tomorrow_view(self, planner, today):
        dated = planner.add_task(TaskCreate(description="Dated", status=TaskStatus.NEXT,
                                            scheduled_for_date=today + timedelta(days=1)))
        undated = planner.add_task(TaskCreate(description="Undated", status=TaskStatus.TOMORROW))
        planner.add_task(TaskCreate(description="Inbox"))

        assert {t.id for t in planner.get_tomorrow_items()} == {dated.id, undated.id}

    def test_inbox_and_status(self, planner):
        inbox = planner.add_task(TaskCreate(description="Inbox"))
        waiting = planner.add_task(TaskCreate(description="Waiting", status=TaskStatus.WAITING))

        assert [t.id for t in planner.get_inbox()] == [inbox.id]
        assert [t.id for t in planner.get_by_status("waiting")] == [waiting.id]
        assert len(planner.get_by_status()) == 2

    def test_scored_today_items(self, planner, today, rated_fields):
        plain = planner.add_task(TaskCreate(description="Plain", status=TaskStatus.TODAY, **rated_fields))
        loud = planner.add_task(TaskCreate(
            description="Loud", status=TaskStatus.TODAY, due_date=today,
            impact=5, consequences=5, friction=4, leverage=2, energy_match=0, time_criticality=0,
            estimate_bucket=90, confidence="high",
        ))

        scored = {s.task.id: s for s in planner.get_scored_today_items()}

        assert (scored[plain.id].ace_score, scored[plain.id].lmt_bonus, scored[plain.id].priority_score) == (12, 2, 14)
        assert scored[plain.id].buffered_minutes == 40
        assert scored[plain.id].badges == []
        assert scored[plain.id].tier_name == "Backlog"
        assert scored[loud.id].badges == ["URGENT", "CRITICAL", "MONSTER", "LEVERAGE", "FRICTION"]
        assert (scored[loud.id].tier, scored[loud.id].tier_name) == (1, "Due Today")
        assert scored[loud.id].is_rated is True

    def test_score_unrated_task(self, planner):
        task = planner.add_task(TaskCreate(description="Unrated"))

        scored = planner.score_task(task)
        assert scored.priority_score is None
        assert scored.buffered_minutes is None
        assert scored.is_rated is False

    def test_today_stats_and_diagnostics(self, planner, today, rated_fields):
        rated = planner.add_task(TaskCreate(description="Rated", status=TaskStatus.TODAY, **rated_fields))
        planner.add_task(TaskCreate(description="Unrated", status=TaskStatus.TODAY))
        planner.add_task(TaskCreate(description="Late", status=TaskStatus.NEXT,
                                    scheduled_for_date=today - timedelta(days=1)))
        planner.set_top3(rated.id)

        stats = planner.get_today_stats()
        assert stats.total_tasks == 3
        assert stats.rated_count == 1
        assert stats.unrated_count == 2
        assert stats.overdue_count == 1
        assert stats.top3.top3_count == 1

        diagnostics = planner.run_diagnostics()
        assert diagnostics.top3_buffered_total == 40
        # 40 / 126
        assert diagnostics.capacity_used_percent == 32
        assert [s.description for s in diagnostics.sample_sort_order] == ["Rated"]


class TestRoutines:
    """Routine CRUD and running."""

    def test_run_routine_creates_today_tasks(self, planner, today):
        routine = planner.add_routine(RoutineCreate(name="Morning", items=[
            PlainTextItem(text="Stretch"),
            TemplateItem(text="Run", tag="Home", estimate_bucket=30, confidence="high", impact=3),
        ]))

        created = planner.run_routine(routine.id)

        assert [t.description for t in created] == ["Stretch", "Run"]
        assert all(t.status == TaskStatus.TODAY and t.scheduled_for_date == today for t in created)
        run = created[1]
        assert (run.tag, run.estimate_bucket, run.confidence, run.impact) == ("Home", 30, "high", 3)
        assert created[0].estimate_bucket is None

    def test_crud(self, planner):
        routine = planner.add_routine(RoutineCreate(name=" Evening ", items=[PlainTextItem(text="Read")]))
        assert routine.name == "Evening"

        renamed = planner.update_routine(routine.id, RoutineUpdate(name="Night"))
        assert renamed.name == "Night"
        assert [i.text for i in renamed.items] == ["Read"]

        replaced = planner.update_routine(routine.id, RoutineUpdate(items=[PlainTextItem(text="Sleep")]))
        assert [i.text for i in planner.get_routine(routine.id).items] == ["Sleep"]
        assert replaced.name == "Night"

        assert [r.id for r in planner.list_routines()] == [routine.id]
        assert planner.delete_routine(routine.id) is True
        assert planner.get_routine(routine.id) is None

    def test_missing_routine(self, planner):
        assert planner.run_routine("missing") is None
        assert planner.update_routine("missing", RoutineUpdate(name="x")) is None
        assert planner.delete_routine("missing") is False

    def test_template_estimate_must_be_a_bucket(self):
        with pytest.raises(ValidationError):
            TemplateItem(text="Run", estimate_bucket=45)
        with pytest.raises(ValidationError):
            RoutineCreate(name="Morning", items=[{"kind": "template", "text": "Run", "estimate_bucket": 0}])
        assert TemplateItem(text="Run", estimate_bucket=60).estimate_bucket == 60
