# src/focus_timeline/sync/adapters.py

"""
Source adapters: one raw remote row -> one UnifiedTask (or nothing).

Each adapter owns its table's column names and defaults. A row that cannot be
parsed is dropped (returns None) so a single bad record never aborts a pass.
Adapters are pure.
"""

from __future__ import annotations

import logging
from datetime import date

from ..core.models import (
    MIN_SLOT_MINUTES,
    BlockType,
    Kind,
    OriginalKind,
    Priority,
    SkipMark,
    UnifiedTask,
    clamp_minutes,
    split_minutes,
)
from ..core.ports import Row

logger = logging.getLogger(__name__)

MEETING_ID_PREFIX = "meeting-"
TODO_ID_PREFIX = "todo-"

TODO_DEFAULT_START = (9, 0)
TODO_DEFAULT_DURATION_MINUTES = 60

_WIRE_KINDS = {
    "timeblock": OriginalKind.TIME_BLOCK,
    "time_block": OriginalKind.TIME_BLOCK,
    "meeting": OriginalKind.MEETING,
    "todo": OriginalKind.TODO,
}


def parse_time_components(value: object) -> tuple[int, int] | None:
    """Parse "HH:MM" or "HH:MM:SS" into (hour, minute)."""
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    parts = s.split(":")
    if len(parts) < 2:
        return None
    try:
        hour = int(parts[0])
        minute = int(parts[1][:2])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def parse_date(value: object) -> date | None:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        # Columns are plain dates; tolerate a trailing time part.
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _opt_str(value: object) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _weekday_sunday_zero(d: date) -> int:
    return d.isoweekday() % 7


def _drop(table: str, row: Row, why: str) -> None:
    logger.debug("Dropping malformed %s record id=%r: %s", table, row.get("id"), why)


def project_recurring_block(row: Row, day: date) -> Row | None:
    """
    Project a recurring time block onto `day`.

    Returns a copy of the row dated `day`, or None when the block does not
    occur on that day (weekday not listed, excluded date, or past its end).
    """
    if not row.get("is_recurring"):
        return None

    days = row.get("recurring_days") or []
    try:
        weekdays = {int(d) for d in days}
    except (TypeError, ValueError):
        return None
    if _weekday_sunday_zero(day) not in weekdays:
        return None

    excluded = {parse_date(d) for d in (row.get("excluded_dates") or [])}
    if day in excluded:
        return None

    end_date = parse_date(row.get("recurring_end_date"))
    if end_date is not None and day > end_date:
        return None

    first_date = parse_date(row.get("date"))
    if first_date is not None and day < first_date:
        return None

    projected = dict(row)
    projected["date"] = day.isoformat()
    return projected


def adapt_time_block(row: Row) -> UnifiedTask | None:
    block_id = _opt_str(row.get("id"))
    if block_id is None:
        _drop("time_block", row, "missing id")
        return None

    start = parse_time_components(row.get("start_time"))
    end = parse_time_components(row.get("end_time"))
    if start is None or end is None:
        _drop("time_block", row, "bad start_time/end_time")
        return None

    block_date = parse_date(row.get("date"))
    if block_date is None:
        _drop("time_block", row, "bad date")
        return None

    block_type = BlockType.from_wire(row.get("type"))

    return UnifiedTask(
        id=block_id,
        original_id=block_id,
        original_kind=OriginalKind.TIME_BLOCK,
        kind=Kind.time_block(block_type),
        title=str(row.get("title") or ""),
        date=block_date,
        start_hour=start[0],
        start_minute=start[1],
        end_hour=end[0],
        end_minute=end[1],
        priority=Priority.NORMAL,
        is_completed=bool(row.get("completed") or False),
        description=_opt_str(row.get("description")),
        meeting_link=_opt_str(row.get("meeting_link")),
        is_recurring=bool(row.get("is_recurring") or False),
    )


def adapt_meeting(row: Row) -> UnifiedTask | None:
    raw_id = row.get("id")
    if raw_id is None or str(raw_id).strip() == "":
        _drop("meeting", row, "missing id")
        return None
    original_id = str(raw_id).strip()

    start = parse_time_components(row.get("time"))
    if start is None:
        _drop("meeting", row, "bad time")
        return None

    meeting_date = parse_date(row.get("date"))
    if meeting_date is None:
        _drop("meeting", row, "bad date")
        return None

    try:
        duration = int(row.get("duration") or 0)
    except (TypeError, ValueError):
        duration = 0
    if duration <= 0:
        duration = MIN_SLOT_MINUTES

    start_total = start[0] * 60 + start[1]
    end_hour, end_minute = split_minutes(clamp_minutes(start_total + duration))

    # Meetings not attached to a project show up as social items.
    kind = Kind.meeting() if row.get("project_id") is not None else Kind.social()

    return UnifiedTask(
        id=f"{MEETING_ID_PREFIX}{original_id}",
        original_id=original_id,
        original_kind=OriginalKind.MEETING,
        kind=kind,
        title=str(row.get("title") or ""),
        date=meeting_date,
        start_hour=start[0],
        start_minute=start[1],
        end_hour=end_hour,
        end_minute=end_minute,
        priority=Priority.HIGH,
        is_completed=bool(row.get("completed") or False),
        description=_opt_str(row.get("description")),
        notes=_opt_str(row.get("notes")),
        meeting_link=_opt_str(row.get("meeting_link")),
        is_recurring=bool(row.get("is_recurring") or False),
    )


def adapt_todo(row: Row, *, fallback_date: date) -> UnifiedTask | None:
    original_id = _opt_str(row.get("id"))
    if original_id is None:
        _drop("todo", row, "missing id")
        return None

    title = _opt_str(row.get("task_name"))
    if title is None:
        _drop("todo", row, "missing task_name")
        return None

    todo_date = parse_date(row.get("start_date")) or fallback_date

    start = TODO_DEFAULT_START
    if row.get("start_time") is not None:
        parsed = parse_time_components(row.get("start_time"))
        if parsed is None:
            _drop("todo", row, "bad start_time")
            return None
        start = parsed

    start_total = start[0] * 60 + start[1]
    end_hour, end_minute = split_minutes(clamp_minutes(start_total + TODO_DEFAULT_DURATION_MINUTES))

    return UnifiedTask(
        id=f"{TODO_ID_PREFIX}{original_id}",
        original_id=original_id,
        original_kind=OriginalKind.TODO,
        kind=Kind.todo(),
        title=title,
        date=todo_date,
        start_hour=start[0],
        start_minute=start[1],
        end_hour=end_hour,
        end_minute=end_minute,
        priority=Priority.from_wire(row.get("priority")),
        is_completed=bool(row.get("completed") or False),
        description=_opt_str(row.get("description")),
    )


def adapt_skip_record(row: Row) -> SkipMark | None:
    kind = _WIRE_KINDS.get(str(row.get("task_type") or "").strip().lower())
    task_id = _opt_str(row.get("task_id"))
    if kind is None or task_id is None:
        _drop("skip", row, "bad task_type/task_id")
        return None
    return SkipMark(original_kind=kind, original_id=task_id, reason=_opt_str(row.get("skip_reason")))


def synthetic_id(original_kind: OriginalKind, original_id: str) -> str:
    """Timeline id for a source record (inverse of the adapters' id scheme)."""
    if original_kind is OriginalKind.MEETING:
        return f"{MEETING_ID_PREFIX}{original_id}"
    if original_kind is OriginalKind.TODO:
        return f"{TODO_ID_PREFIX}{original_id}"
    return original_id
