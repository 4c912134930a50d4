"""Snapshot export/import for Battle Plan.

A snapshot is one JSON document:

    {"version": 4, "exported": "...", "items": [...], "routines": [...],
     "settings": {...}, "calibrationHistory": [...]}

Import treats the document as untrusted. Every record is whitelist-filtered
to known fields (legacy camelCase / single-letter keys are mapped first),
out-of-range ratings, buckets and enums become None, colliding or missing
ids are regenerated, and records without a description are skipped. A bad
field never fails the whole import; a bad version or shape does, before
anything is written.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Type

from pydantic import ValidationError

from battleplan.database.models import value_to_enum
from battleplan.database.storage import Storage
from battleplan.models.calibration import CalibrationEntry
from battleplan.models.constants import (
    ACE_MAX,
    ACE_MIN,
    DEFAULT_CALIBRATION_TAG,
    ESTIMATE_BUCKETS,
    EXPORT_VERSION,
    LMT_MAX,
    LMT_MIN,
)
from battleplan.models.plans import ImportResult
from battleplan.models.routine import PlainTextItem, Routine, TemplateItem
from battleplan.models.settings import SETTING_KEYS, PlannerSettings, SettingsUpdate, resolve_settings
from battleplan.models.task import Confidence, Recurrence, Task, TaskStatus, TaskTag
from battleplan.models.task_factory import generate_id

logger = logging.getLogger(__name__)

UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
INVALID_FORMAT = "INVALID_FORMAT"

# Older snapshots used the browser app's field names
LEGACY_TASK_KEYS = {
    "text": "description",
    "A": "impact",
    "C": "consequences",
    "E": "friction",
    "L": "leverage",
    "M": "energy_match",
    "T": "time_criticality",
    "isTop3": "is_top3",
    "top3Order": "top3_order",
    "top3Date": "top3_date",
    "top3Locked": "top3_locked",
    "dueDate": "due_date",
    "parentId": "parent_id",
    "recurrenceDay": "recurrence_day",
    "created": "created_at",
    "startedAt": "started_at",
    "completedAt": "completed_at",
}

TASK_FIELDS = frozenset(Task.model_fields.keys())

_ACE_FIELDS = ("impact", "consequences", "friction")
_LMT_FIELDS = ("leverage", "energy_match", "time_criticality")


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------

def export_snapshot(storage: Storage, now: datetime) -> Dict[str, Any]:
    """Full snapshot of every collection as a JSON-serializable dict."""
    return {
        "version": EXPORT_VERSION,
        "exported": now.isoformat(),
        "items": [t.model_dump(mode="json") for t in storage.tasks.get_all()],
        "routines": [r.model_dump(mode="json") for r in storage.routines.get_all()],
        "settings": resolve_settings(storage.settings.get_all()).model_dump(mode="json"),
        "calibrationHistory": [e.model_dump(mode="json") for e in storage.calibration.get_all()],
    }


# ----------------------------------------------------------------------
# Field coercion
# ----------------------------------------------------------------------

def coerce_int(value: Any, low: Optional[int] = None, high: Optional[int] = None) -> Optional[int]:
    """Integer within [low, high], or None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int):
        return None
    if low is not None and value < low:
        return None
    if high is not None and value > high:
        return None
    return value


def coerce_enum(value: Any, enum_class: Type[Enum]) -> Optional[str]:
    """Enum value (matched case-insensitively), or None."""
    if not isinstance(value, str):
        return None
    member = value_to_enum(value.strip(), enum_class, None)
    return member.value if member is not None else None


def coerce_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Naive datetime from an ISO string (a trailing Z / offset is dropped)."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


def _coerce_bucket(value: Any) -> Optional[int]:
    bucket = coerce_int(value)
    return bucket if bucket in ESTIMATE_BUCKETS else None


def _coerce_rating_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for name in _ACE_FIELDS:
        fields[name] = coerce_int(data.get(name), ACE_MIN, ACE_MAX)
    for name in _LMT_FIELDS:
        fields[name] = coerce_int(data.get(name), LMT_MIN, LMT_MAX)
    return fields


def _fresh_id(candidate: Any, taken: Set[str]) -> Tuple[str, bool]:
    """Keep `candidate` when it is a usable unused id; otherwise generate one."""
    if isinstance(candidate, str) and candidate and candidate not in taken:
        taken.add(candidate)
        return candidate, False
    new_id = generate_id()
    taken.add(new_id)
    return new_id, True


# ----------------------------------------------------------------------
# Record sanitization
# ----------------------------------------------------------------------

def filter_task_keys(record: Dict[str, Any]) -> Dict[str, Any]:
    """Map legacy keys and drop everything that is not a Task field.

    A canonical key wins over its legacy alias when both are present.
    """
    data: Dict[str, Any] = {}
    for key, value in record.items():
        if key in TASK_FIELDS:
            data[key] = value
    for legacy, name in LEGACY_TASK_KEYS.items():
        if legacy in record and name not in data:
            data[name] = record[legacy]
    return data


def sanitize_task(record: Any, taken_ids: Set[str], now: datetime) -> Tuple[Optional[Task], bool]:
    """Build a Task from an untrusted record.

    Args:
        record: Incoming record (anything)
        taken_ids: Ids already used by this import (updated in place)
        now: Fallback timestamp

    Returns:
        (task or None when the record is unusable, whether the id was regenerated)
    """
    if not isinstance(record, dict):
        return None, False
    data = filter_task_keys(record)

    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        return None, False

    recurrence = coerce_enum(data.get("recurrence"), Recurrence)
    recurrence_day = coerce_int(data.get("recurrence_day"), 0, 31)
    if recurrence == Recurrence.WEEKLY.value and recurrence_day is not None and recurrence_day > 6:
        recurrence_day = None
    if recurrence == Recurrence.MONTHLY.value and recurrence_day == 0:
        recurrence_day = None

    top3_date = coerce_date(data.get("top3_date"))
    # Membership without a date is meaningless
    is_top3 = data.get("is_top3") is True and top3_date is not None

    parent_id = data.get("parent_id")
    task_id, regenerated = _fresh_id(data.get("id"), taken_ids)

    task = Task(
        id=task_id,
        description=description.strip(),
        status=coerce_enum(data.get("status"), TaskStatus) or TaskStatus.INBOX.value,
        tag=coerce_enum(data.get("tag"), TaskTag),
        next_action=data.get("next_action") if isinstance(data.get("next_action"), str) else None,
        estimate_bucket=_coerce_bucket(data.get("estimate_bucket")),
        confidence=coerce_enum(data.get("confidence"), Confidence),
        actual_bucket=coerce_int(data.get("actual_bucket"), 0),
        scheduled_for_date=coerce_date(data.get("scheduled_for_date")),
        due_date=coerce_date(data.get("due_date")),
        is_top3=is_top3,
        top3_order=coerce_int(data.get("top3_order"), 0) if is_top3 else None,
        top3_date=top3_date if is_top3 else None,
        top3_locked=is_top3 and data.get("top3_locked") is True,
        recurrence=recurrence,
        recurrence_day=recurrence_day if recurrence else None,
        parent_id=parent_id if isinstance(parent_id, str) and parent_id else None,
        created_at=coerce_datetime(data.get("created_at")) or now,
        updated_at=now,
        started_at=coerce_datetime(data.get("started_at")),
        completed_at=coerce_datetime(data.get("completed_at")),
        **_coerce_rating_fields(data),
    )
    return task, regenerated


def sanitize_routine_item(item: Any):
    """Bare strings become plain-text items; dicts become template items."""
    if isinstance(item, str):
        return PlainTextItem(text=item.strip()) if item.strip() else None
    if not isinstance(item, dict):
        return None
    text = item.get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    if item.get("kind") == "text":
        return PlainTextItem(text=text.strip())
    return TemplateItem(
        text=text.strip(),
        tag=coerce_enum(item.get("tag"), TaskTag),
        estimate_bucket=_coerce_bucket(item.get("estimate_bucket")),
        confidence=coerce_enum(item.get("confidence"), Confidence),
        **_coerce_rating_fields(item),
    )


def sanitize_routine(record: Any, taken_ids: Set[str], now: datetime) -> Optional[Routine]:
    if not isinstance(record, dict):
        return None
    name = record.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    raw_items = record.get("items")
    items = [sanitize_routine_item(i) for i in raw_items] if isinstance(raw_items, list) else []
    routine_id, _ = _fresh_id(record.get("id"), taken_ids)
    return Routine(
        id=routine_id,
        name=name.strip(),
        items=[i for i in items if i is not None],
        created_at=coerce_datetime(record.get("created_at")) or now,
    )


def sanitize_calibration_entry(record: Any, taken_ids: Set[str], now: datetime) -> Optional[CalibrationEntry]:
    if not isinstance(record, dict):
        return None
    estimate = coerce_int(record.get("estimate_bucket"), 1)
    actual = coerce_int(record.get("actual_bucket"), 1)
    if estimate is None or actual is None:
        return None
    tag = record.get("tag")
    entry_id, _ = _fresh_id(record.get("id"), taken_ids)
    return CalibrationEntry(
        id=entry_id,
        tag=tag if isinstance(tag, str) and tag else DEFAULT_CALIBRATION_TAG,
        estimate_bucket=estimate,
        actual_bucket=actual,
        completed_at=coerce_datetime(record.get("completed_at")) or now,
    )


def sanitize_settings(record: Any) -> Dict[str, Any]:
    """Whitelisted, individually validated settings as JSON-ready values."""
    if not isinstance(record, dict):
        return {}
    clean: Dict[str, Any] = {}
    for key, value in record.items():
        if key not in SETTING_KEYS or value is None:
            continue
        try:
            if key in SettingsUpdate.model_fields:
                parsed = SettingsUpdate(**{key: value})
            else:
                parsed = PlannerSettings(**{key: value})
        except ValidationError:
            logger.debug(f"Dropped invalid imported setting {key}={value!r}")
            continue
        clean[key] = parsed.model_dump(mode="json")[key]
    return clean


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------

def _invalid(message: str) -> ImportResult:
    return ImportResult(success=False, error=INVALID_FORMAT, message=message)


def import_snapshot(storage: Storage, data: Any, now: datetime) -> ImportResult:
    """Replace every collection with the contents of a snapshot.

    Nothing is written unless the version and overall shape are acceptable.

    Args:
        storage: Target storage
        data: Parsed snapshot document
        now: Fallback timestamp for records missing one

    Returns:
        ImportResult with counts, or the reason the snapshot was rejected
    """
    if not isinstance(data, dict) or not data.get("version"):
        return _invalid("Invalid backup file format")

    version = data["version"]
    if isinstance(version, bool) or not isinstance(version, int):
        return _invalid("Invalid backup file format")
    if version > EXPORT_VERSION:
        return ImportResult(
            success=False,
            error=UNSUPPORTED_VERSION,
            message=f"Backup version {version} is newer than supported (max {EXPORT_VERSION}).",
        )

    raw_items = data.get("items") or []
    raw_routines = data.get("routines") or []
    raw_calibration = data.get("calibrationHistory") or []
    raw_settings = data.get("settings") or {}
    if not all(isinstance(v, list) for v in (raw_items, raw_routines, raw_calibration)):
        return _invalid("Invalid backup file format: items, routines and calibrationHistory must be lists")
    if not isinstance(raw_settings, dict):
        return _invalid("Invalid backup file format: settings must be an object")

    task_ids: Set[str] = set()
    tasks: List[Task] = []
    skipped = 0
    regenerated = 0
    for record in raw_items:
        task, renamed = sanitize_task(record, task_ids, now)
        if task is None:
            skipped += 1
            continue
        tasks.append(task)
        regenerated += int(renamed)

    routine_ids: Set[str] = set()
    routines = [r for r in (sanitize_routine(r, routine_ids, now) for r in raw_routines) if r is not None]

    entry_ids: Set[str] = set()
    entries = [
        e for e in (sanitize_calibration_entry(e, entry_ids, now) for e in raw_calibration)
        if e is not None
    ]

    settings = sanitize_settings(raw_settings)

    storage.replace_everything(tasks, routines, settings, entries)
    logger.info(
        f"Imported snapshot v{version}: {len(tasks)} tasks ({skipped} skipped, {regenerated} ids regenerated), "
        f"{len(routines)} routines, {len(entries)} calibration entries, {len(settings)} settings"
    )
    return ImportResult(
        success=True,
        tasks_imported=len(tasks),
        tasks_skipped=skipped,
        ids_regenerated=regenerated,
        routines_imported=len(routines),
        calibration_imported=len(entries),
        settings_imported=len(settings),
    )
