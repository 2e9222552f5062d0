# src/focus_timeline/sync/coordinator.py

from __future__ import annotations

"""
Sync coordinator.

Turns a mutation intent into:
- an optimistic local change (applied before the first suspension point),
- one remote write against the table the entity came from (original_kind),
- on failure: a full resync from the remote store, then SyncError.

The edit guard is held around local change + write and released once the
write has settled, before any resync.
"""

import logging
import math
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import date

from ..config import SourceTables
from ..core.errors import RemoteStoreError, SyncError
from ..core.models import (
    LAST_MINUTE_OF_DAY,
    MIN_SLOT_MINUTES,
    BlockType,
    Kind,
    KindTag,
    NewTaskFields,
    OriginalKind,
    Priority,
    UnifiedTask,
    clamp_minutes,
    format_wire_time,
)
from ..core.ports import RemoteTaskStore, Row, eq
from ..core.store import TimelineStore
from .adapters import MEETING_ID_PREFIX, TODO_DEFAULT_DURATION_MINUTES, synthetic_id
from .aggregator import TaskAggregator
from .edit_guard import EditGuard

logger = logging.getLogger(__name__)

ROUND_STEP_MINUTES = 15
MIN_INTENT_MINUTES = 5
PROVISIONAL_MARK = "local-"


# ---- intents ----


@dataclass(frozen=True, slots=True)
class Move:
    task_id: str
    delta_minutes: float


@dataclass(frozen=True, slots=True)
class Resize:
    task_id: str
    delta_minutes: float


@dataclass(frozen=True, slots=True)
class ToggleComplete:
    task_id: str


@dataclass(frozen=True, slots=True)
class Skip:
    task_id: str
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class Unskip:
    task_id: str


@dataclass(frozen=True, slots=True)
class Delete:
    task_id: str


@dataclass(frozen=True, slots=True)
class Create:
    fields: NewTaskFields


@dataclass(frozen=True, slots=True)
class Duplicate:
    task_id: str


Intent = Move | Resize | ToggleComplete | Skip | Unskip | Delete | Create | Duplicate


@dataclass(frozen=True, slots=True)
class ApplyResult:
    """applied=False means the gesture was too small / had no effect (not an error)."""

    applied: bool
    task_id: str | None = None


NOOP = ApplyResult(applied=False)


@dataclass(slots=True)
class _Plan:
    guard_id: str
    apply_local: Callable[[], None]
    write: Callable[[], Awaitable[object]]
    resync_after: bool = False
    # Maps the write result to the final task id (server-assigned ids).
    confirm: Callable[[object], str] | None = None


# ---- helpers ----


def round_delta(delta_minutes: float) -> int:
    """
    Round a drag delta to the 15-minute grid.

    A delta that rounds to 0 but is at least 5 minutes is bumped to one step
    (same sign). Anything under 5 minutes is 0.
    """
    delta = float(delta_minutes)
    if not math.isfinite(delta):
        return 0
    magnitude = abs(delta)
    steps = math.floor(magnitude / ROUND_STEP_MINUTES + 0.5)
    if steps == 0 and magnitude >= MIN_INTENT_MINUTES:
        steps = 1
    if steps == 0:
        return 0
    return int(math.copysign(steps * ROUND_STEP_MINUTES, delta_minutes))


def wire_user_id(user_id: str) -> int | str:
    s = str(user_id).strip()
    return int(s) if s.isdigit() else s


def times_patch(task: UnifiedTask) -> Row:
    """Time columns for task's source table."""
    if task.original_kind is OriginalKind.MEETING:
        return {
            "time": format_wire_time(task.start_hour, task.start_minute),
            "duration": max(0, task.duration_minutes),
        }
    if task.original_kind is OriginalKind.TODO:
        return {"start_time": format_wire_time(task.start_hour, task.start_minute)}
    return {
        "start_time": format_wire_time(task.start_hour, task.start_minute),
        "end_time": format_wire_time(task.end_hour, task.end_minute),
    }


class SyncCoordinator:
    def __init__(
        self,
        remote: RemoteTaskStore,
        store: TimelineStore,
        guard: EditGuard,
        aggregator: TaskAggregator,
        *,
        user_id: str,
        tables: SourceTables | None = None,
        new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._remote = remote
        self._store = store
        self._guard = guard
        self._aggregator = aggregator
        self._user_id = user_id
        self._tables = tables or SourceTables()
        self._new_id = new_id

        self._planners: dict[type, Callable[..., _Plan | None]] = {
            Move: self._plan_move,
            Resize: self._plan_resize,
            ToggleComplete: self._plan_toggle,
            Skip: self._plan_skip,
            Unskip: self._plan_unskip,
            Delete: self._plan_delete,
            Create: self._plan_create,
            Duplicate: self._plan_duplicate,
        }

    @property
    def user_id(self) -> str:
        return self._user_id

    async def apply(self, intent: Intent) -> ApplyResult:
        """
        Apply one intent: local change now, remote write next.

        Raises:
        - UnknownTaskError if the intent names an id that is not in the store
        - SyncError if the remote write failed (after the resync has run)
        """
        planner = self._planners.get(type(intent))
        if planner is None:
            raise TypeError(f"Unsupported intent: {intent!r}")

        plan = planner(intent)
        if plan is None:
            logger.debug("Intent is a no-op: %r", intent)
            return NOOP

        failure: RemoteStoreError | None = None
        with self._guard.hold(plan.guard_id):
            plan.apply_local()
            written: object = None
            try:
                written = await plan.write()
            except RemoteStoreError as exc:
                failure = exc

        if failure is not None:
            logger.warning("Remote write failed for %r: %s; resyncing", intent, failure)
            await self._resync()
            raise SyncError(intent, failure) from failure

        task_id = plan.confirm(written) if plan.confirm is not None else plan.guard_id
        logger.info("Applied %s task_id=%s", type(intent).__name__, task_id)
        if plan.resync_after:
            await self._resync()
        return ApplyResult(applied=True, task_id=task_id)

    async def _resync(self) -> None:
        try:
            await self._aggregator.fetch_all(self._user_id)
        except Exception:
            logger.exception("Resync after write failed user_id=%s", self._user_id)

    # ---- writes ----

    def _update(self, task: UnifiedTask, patch: Row) -> Callable[[], Awaitable[object]]:
        table = self._tables.for_kind(task.original_kind)
        filters = [eq("id", task.original_id)]

        def _write() -> Awaitable[object]:
            return self._remote.update(table, filters, patch)

        return _write

    def _replace_local(self, task: UnifiedTask) -> Callable[[], None]:
        return lambda: self._store.put_local(task)

    # ---- planners ----

    def _plan_move(self, intent: Move) -> _Plan | None:
        task = self._store.require(intent.task_id)
        delta = round_delta(intent.delta_minutes)
        if delta == 0:
            return None

        start, end = task.start_minutes, task.end_minutes
        # Keep the whole entity inside its day.
        delta = max(-start, min(LAST_MINUTE_OF_DAY - max(start, end), delta))
        if delta == 0:
            return None

        if task.original_kind is OriginalKind.TODO:
            updated = task.with_times(start + delta, start + delta + TODO_DEFAULT_DURATION_MINUTES)
        else:
            updated = task.with_times(start + delta, end + delta)

        return _Plan(task.id, self._replace_local(updated), self._update(task, times_patch(updated)))

    def _plan_resize(self, intent: Resize) -> _Plan | None:
        task = self._store.require(intent.task_id)
        delta = round_delta(intent.delta_minutes)
        if delta == 0:
            return None

        if task.original_kind is OriginalKind.TODO:
            # Todos store a start only; there is no end to resize.
            return None

        new_end = clamp_minutes(task.end_minutes + delta)
        if new_end - task.start_minutes < MIN_SLOT_MINUTES:
            logger.debug("Resize below %d minutes ignored task_id=%s", MIN_SLOT_MINUTES, task.id)
            return None
        if new_end == task.end_minutes:
            return None

        updated = task.with_times(task.start_minutes, new_end)
        return _Plan(task.id, self._replace_local(updated), self._update(task, times_patch(updated)))

    def _plan_toggle(self, intent: ToggleComplete) -> _Plan | None:
        task = self._store.require(intent.task_id)
        completed = not task.is_completed
        updated = replace(task, is_completed=completed)
        return _Plan(task.id, self._replace_local(updated), self._update(task, {"completed": completed}))

    def _plan_skip(self, intent: Skip) -> _Plan | None:
        task = self._store.require(intent.task_id)
        reason = (intent.reason or "").strip() or None
        updated = replace(task, is_skipped=True, skip_reason=reason)
        row: Row = {
            "user_id": wire_user_id(self._user_id),
            "task_id": task.original_id,
            "task_type": task.original_kind.wire_name,
            "task_title": task.title,
            "task_date": task.date.isoformat(),
            "skip_reason": reason,
        }

        def _write() -> Awaitable[object]:
            return self._remote.insert(self._tables.skips, row)

        return _Plan(task.id, self._replace_local(updated), _write)

    def _plan_unskip(self, intent: Unskip) -> _Plan | None:
        task = self._store.require(intent.task_id)
        if not task.is_skipped:
            return None
        updated = replace(task, is_skipped=False, skip_reason=None)
        filters = [
            eq("user_id", self._user_id),
            eq("task_id", task.original_id),
            eq("task_type", task.original_kind.wire_name),
        ]

        def _write() -> Awaitable[object]:
            return self._remote.delete(self._tables.skips, filters)

        return _Plan(task.id, self._replace_local(updated), _write)

    def _plan_delete(self, intent: Delete) -> _Plan | None:
        task = self._store.require(intent.task_id)
        table = self._tables.for_kind(task.original_kind)
        filters = [eq("id", task.original_id)]

        def _write() -> Awaitable[object]:
            return self._remote.delete(table, filters)

        return _Plan(task.id, lambda: self._store.remove_local(task.id), _write)

    def _plan_create(self, intent: Create) -> _Plan | None:
        fields = intent.fields
        if not fields.title or not fields.title.strip():
            raise ValueError("title is required")
        start = fields.start_hour * 60 + fields.start_minute
        end = fields.end_hour * 60 + fields.end_minute
        if not (0 <= start <= LAST_MINUTE_OF_DAY and 0 <= end <= LAST_MINUTE_OF_DAY):
            raise ValueError("start/end must be within the day")
        if fields.original_kind is not OriginalKind.TODO and end - start < MIN_SLOT_MINUTES:
            raise ValueError(f"duration must be at least {MIN_SLOT_MINUTES} minutes")
        return self._plan_insert(fields)

    def _plan_duplicate(self, intent: Duplicate) -> _Plan | None:
        task = self._store.require(intent.task_id)
        block_type = task.kind.block_type
        if block_type is None:
            block_type = BlockType.SOCIAL if task.kind.tag is KindTag.SOCIAL else BlockType.PERSONAL
        fields = NewTaskFields(
            title=task.title,
            date=task.date,
            start_hour=task.start_hour,
            start_minute=task.start_minute,
            end_hour=task.end_hour,
            end_minute=task.end_minute,
            original_kind=task.original_kind,
            block_type=block_type,
            priority=task.priority,
            description=task.description,
            meeting_link=task.meeting_link,
        )
        return self._plan_insert(fields)

    def _plan_insert(self, fields: NewTaskFields) -> _Plan:
        kind = fields.original_kind
        table = self._tables.for_kind(kind)
        user_id = wire_user_id(self._user_id)
        day: date = fields.date
        start_wire = format_wire_time(fields.start_hour, fields.start_minute)
        resync_after = False

        if kind is OriginalKind.MEETING:
            # Meeting ids are assigned by the server: show a provisional row,
            # re-key it to the stored id, then resync.
            original_id = f"{PROVISIONAL_MARK}{self._new_id()}"
            task_id = f"{MEETING_ID_PREFIX}{original_id}"
            start_total = fields.start_hour * 60 + fields.start_minute
            end_total = fields.end_hour * 60 + fields.end_minute
            duration = max(MIN_SLOT_MINUTES, end_total - start_total)
            row: Row = {
                "user_id": user_id,
                "title": fields.title,
                "description": fields.description,
                "date": day.isoformat(),
                "time": start_wire,
                "duration": duration,
                "meeting_link": fields.meeting_link,
                "completed": False,
            }
            presentation = Kind.meeting()
            priority = Priority.HIGH
            resync_after = True
        elif kind is OriginalKind.TODO:
            original_id = self._new_id()
            task_id = synthetic_id(kind, original_id)
            row = {
                "id": original_id,
                "user_id": user_id,
                "task_name": fields.title,
                "description": fields.description,
                "priority": fields.priority.value,
                "completed": False,
                "start_date": day.isoformat(),
                "start_time": start_wire,
            }
            presentation = Kind.todo()
            priority = fields.priority
        else:
            original_id = self._new_id()
            task_id = original_id
            row = {
                "id": original_id,
                "user_id": user_id,
                "date": day.isoformat(),
                "start_time": start_wire,
                "end_time": format_wire_time(fields.end_hour, fields.end_minute),
                "title": fields.title,
                "description": fields.description,
                "type": fields.block_type.value,
                "meeting_link": fields.meeting_link,
                "completed": False,
                "is_recurring": False,
            }
            presentation = Kind.time_block(fields.block_type)
            priority = Priority.NORMAL

        task = UnifiedTask(
            id=task_id,
            original_id=original_id,
            original_kind=kind,
            kind=presentation,
            title=fields.title,
            date=day,
            start_hour=fields.start_hour,
            start_minute=fields.start_minute,
            end_hour=fields.end_hour,
            end_minute=fields.end_minute,
            priority=priority,
            description=fields.description,
            meeting_link=fields.meeting_link,
        )
        if kind is OriginalKind.TODO:
            task = task.with_times(task.start_minutes, task.start_minutes + TODO_DEFAULT_DURATION_MINUTES)

        def _write() -> Awaitable[object]:
            return self._remote.insert(table, row)

        confirm = self._rekey_confirmed(task) if kind is OriginalKind.MEETING else None
        return _Plan(task.id, self._replace_local(task), _write, resync_after=resync_after, confirm=confirm)

    def _rekey_confirmed(self, provisional: UnifiedTask) -> Callable[[object], str]:
        def _confirm(written: object) -> str:
            rows = written if isinstance(written, list) else []
            stored_id = rows[0].get("id") if rows and isinstance(rows[0], dict) else None
            if stored_id is None:
                logger.warning("Insert returned no id for %s; keeping provisional row", provisional.id)
                return provisional.id
            current = self._store.remove_local(provisional.id) or provisional
            original_id = str(stored_id)
            confirmed = replace(
                current,
                id=synthetic_id(current.original_kind, original_id),
                original_id=original_id,
            )
            self._store.put_local(confirmed)
            return confirmed.id

        return _confirm
