"""Top-3 selection for Battle Plan.

Greedy, capacity- and constraint-aware choice of up to three focus tasks:
- locked members (set by explicit user action) are kept unconditionally;
- urgent tasks (C == 5) go first, then by priority score;
- at most one MONSTER;
- the buffered minutes of the selection must fit usable capacity.

Nothing here writes to storage; the planner applies the result.
"""

from datetime import date
from typing import Callable, List, Mapping, Optional, Sequence

from battleplan.models.constants import MAX_TOP3, MAX_TOP3_MONSTERS
from battleplan.models.plans import Top3Candidate, Top3Rejection, Top3Stats, Top3Suggestion
from battleplan.models.task import Task
from battleplan.engine.classification import has_valid_top3, is_monster_effective, is_rated
from battleplan.engine.scoring import is_urgent, priority_score

BufferedMinutes = Callable[[Task], Optional[int]]

MONSTER_LIMIT = "MONSTER_LIMIT"
TOP3_FULL = "TOP3_FULL"


def _is_locked_member(task: Task, today: date) -> bool:
    return has_valid_top3(task, today) and bool(task.top3_locked)


def _candidate(
    task: Task,
    buffered: BufferedMinutes,
    subtasks_by_parent: Mapping[str, Sequence[Task]],
    locked: bool = False,
) -> Top3Candidate:
    return Top3Candidate(
        task=task,
        priority_score=priority_score(task),
        buffered_minutes=buffered(task) or 0,
        is_urgent=is_urgent(task),
        is_monster=is_monster_effective(task, subtasks_by_parent.get(task.id, ())),
        locked=locked,
    )


def rank_candidates(candidates: List[Top3Candidate]) -> List[Top3Candidate]:
    """Urgent first, then priority score descending; stable otherwise."""
    return sorted(candidates, key=lambda c: (not c.is_urgent, -(c.priority_score or 0)))


def suggest_top3(
    today_items: Sequence[Task],
    today: date,
    capacity: int,
    buffered: BufferedMinutes,
    subtasks_by_parent: Optional[Mapping[str, Sequence[Task]]] = None,
    current_members: Sequence[Task] = (),
) -> Top3Suggestion:
    """Build a Top-3 selection plan.

    Every locked member keeps its slot, rated or not and whether or not it is
    still a today item, and counts toward the monster limit.

    Args:
        today_items: Tasks qualifying for today (see `is_today_item`)
        today: The current calendar day
        capacity: Usable capacity in minutes
        buffered: Buffered-minutes lookup for a task
        subtasks_by_parent: Subtasks keyed by parent id (for effective monster checks)
        current_members: Tasks holding valid Top-3 membership today

    Returns:
        Top3Suggestion with the selection and an explanatory message when short
    """
    subtasks_by_parent = subtasks_by_parent or {}

    pool = {t.id: t for t in today_items}
    for member in current_members:
        pool.setdefault(member.id, member)

    locked = [
        _candidate(t, buffered, subtasks_by_parent, locked=True)
        for t in pool.values()
        if _is_locked_member(t, today)
    ]
    candidates = rank_candidates([
        _candidate(t, buffered, subtasks_by_parent)
        for t in today_items
        if is_rated(t) and not _is_locked_member(t, today)
    ])

    selected: List[Top3Candidate] = list(locked)
    used_minutes = sum(c.buffered_minutes for c in locked)
    monster_count = sum(1 for c in locked if c.is_monster)
    selected_ids = {c.task.id for c in selected}

    for candidate in candidates:
        if len(selected) >= MAX_TOP3:
            break
        if candidate.task.id in selected_ids:
            continue
        if candidate.is_monster and monster_count >= MAX_TOP3_MONSTERS:
            continue
        if used_minutes + candidate.buffered_minutes > capacity:
            continue

        selected.append(candidate)
        selected_ids.add(candidate.task.id)
        used_minutes += candidate.buffered_minutes
        if candidate.is_monster:
            monster_count += 1

    return Top3Suggestion(
        suggested=selected,
        used_minutes=used_minutes,
        capacity=capacity,
        message=_shortfall_message(selected, candidates),
        monster_count=monster_count,
        locked_count=len(locked),
    )


def _shortfall_message(selected: List[Top3Candidate], candidates: List[Top3Candidate]) -> Optional[str]:
    if not selected and candidates:
        if all(c.is_monster for c in candidates):
            return "Everything is a MONSTER. Break a task down or lower estimates."
        return "No tasks fit within capacity. Reduce estimates or increase capacity."
    if len(selected) < MAX_TOP3 and len(candidates) >= MAX_TOP3:
        noun = "task" if len(selected) == 1 else "tasks"
        return (
            f"Only {len(selected)} {noun} fit within today's capacity. "
            "Break down a MONSTER or lower estimates."
        )
    return None


def check_top3_admission(
    task: Task,
    current_members: Sequence[Task],
    subtasks_by_parent: Optional[Mapping[str, Sequence[Task]]] = None,
) -> Optional[Top3Rejection]:
    """Decide whether `task` may join today's Top 3.

    Args:
        task: Task being added
        current_members: Tasks holding valid Top-3 membership today
        subtasks_by_parent: Subtasks keyed by parent id

    Returns:
        None when allowed, otherwise the reason it is rejected
    """
    subtasks_by_parent = subtasks_by_parent or {}
    if any(m.id == task.id for m in current_members):
        return None

    if is_monster_effective(task, subtasks_by_parent.get(task.id, ())):
        monsters = sum(
            1 for m in current_members if is_monster_effective(m, subtasks_by_parent.get(m.id, ()))
        )
        if monsters >= MAX_TOP3_MONSTERS:
            return Top3Rejection(
                error=MONSTER_LIMIT,
                message="Only 1 MONSTER allowed in Top 3. Break it down or remove the other MONSTER first.",
            )

    if len(current_members) >= MAX_TOP3:
        return Top3Rejection(error=TOP3_FULL, message="Top 3 is full. Remove an item first.")

    return None


def top3_stats(
    members: Sequence[Task],
    capacity: int,
    buffered: BufferedMinutes,
    subtasks_by_parent: Optional[Mapping[str, Sequence[Task]]] = None,
) -> Top3Stats:
    """Totals for today's valid Top-3 members."""
    subtasks_by_parent = subtasks_by_parent or {}
    total = sum(buffered(m) or 0 for m in members)
    return Top3Stats(
        total_buffered=total,
        capacity=capacity,
        monster_count=sum(1 for m in members if is_monster_effective(m, subtasks_by_parent.get(m.id, ()))),
        locked_count=sum(1 for m in members if m.top3_locked),
        is_over_capacity=total > capacity,
        top3_count=len(members),
    )
