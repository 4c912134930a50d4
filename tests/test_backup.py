"""Tests for the debounced auto-backup."""

import asyncio
import json
from datetime import datetime, timedelta

from battleplan.models.task import TaskCreate
from battleplan.service.backup import BACKUP_PREFIX, AutoBackup, backup_filename


def _ticking_clock(start=datetime(2026, 10, 14, 10, 0)):
    """Clock that advances one second per call so file names never collide."""
    state = {"now": start}

    def now():
        state["now"] += timedelta(seconds=1)
        return state["now"]
    return now


def test_backup_filename_sorts_chronologically():
    earlier = backup_filename(datetime(2026, 10, 14, 9, 59, 59))
    later = backup_filename(datetime(2026, 10, 14, 10, 0, 0))

    assert earlier.startswith(BACKUP_PREFIX)
    assert earlier < later


class TestRunNow:
    """Test AutoBackup.run_now() and pruning."""

    def test_writes_snapshot(self, planner, session_factory, tmp_path):
        planner.add_task(TaskCreate(description="Back me up"))
        backup = AutoBackup(session_factory, str(tmp_path / "backups"), now=_ticking_clock())

        path = backup.run_now()

        assert path is not None and path.exists()
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == 4
        assert [item["description"] for item in data["items"]] == ["Back me up"]

    def test_keeps_newest_files(self, session_factory, tmp_path):
        backup = AutoBackup(session_factory, str(tmp_path), keep=3, now=_ticking_clock())

        paths = [backup.run_now() for _ in range(5)]

        assert backup.backups() == paths[2:]

    def test_failure_is_logged_not_raised(self, tmp_path, caplog):
        def broken_session():
            raise RuntimeError("database is gone")

        backup = AutoBackup(broken_session, str(tmp_path))

        assert backup.run_now() is None
        assert "Auto-backup failed" in caplog.text


class TestDebounce:
    """Test the cancel-and-reschedule timer."""

    def test_touch_without_event_loop_is_a_no_op(self, session_factory, tmp_path):
        backup = AutoBackup(session_factory, str(tmp_path))

        backup.touch()
        assert backup.pending is False

    def test_burst_of_touches_writes_once(self, session_factory, tmp_path):
        backup = AutoBackup(session_factory, str(tmp_path), delay=0.2)
        calls = []
        backup.run_now = lambda: calls.append(datetime.now())

        async def burst():
            for _ in range(5):
                backup.touch()
                await asyncio.sleep(0.01)
            assert backup.pending is True
            await asyncio.sleep(0.6)

        asyncio.run(burst())

        assert len(calls) == 1
        assert backup.pending is False

    def test_cancel(self, session_factory, tmp_path):
        backup = AutoBackup(session_factory, str(tmp_path), delay=0.05)
        calls = []
        backup.run_now = lambda: calls.append(1)

        async def touch_then_cancel():
            backup.touch()
            backup.cancel()
            await asyncio.sleep(0.2)

        asyncio.run(touch_then_cancel())

        assert calls == []

    def test_planner_mutations_touch_the_backup(self, storage, clock):
        from battleplan.service.planner import Planner

        class Recorder:
            touches = 0

            def touch(self):
                self.touches += 1

        recorder = Recorder()
        planner = Planner(storage, now=clock, backup=recorder)

        task = planner.add_task(TaskCreate(description="Touch me"))
        planner.get_today_items()
        planner.delete_task(task.id)

        assert recorder.touches == 2
