# src/focus_timeline/sync/aggregator.py

from __future__ import annotations

"""
Task aggregator.

One aggregation pass:
- fetches every source table concurrently for one user,
- maps rows through the source adapters (bad rows are dropped),
- merges the result with the current collection, honoring the edit guard,
- publishes the merged collection once.

A failing source is logged and treated as empty, so the timeline always shows
whatever could be loaded.
"""

import asyncio
import itertools
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import date, timedelta

from ..config import SourceTables
from ..core.errors import SourceUnavailable
from ..core.models import OriginalKind, SkipMark, UnifiedTask
from ..core.ports import RemoteTaskStore, Row, eq, gte, lte
from ..core.store import TimelineStore
from . import adapters
from .edit_guard import EditGuard

logger = logging.getLogger(__name__)

# Fields owned by the local edit while a task is guarded.
GUARDED_FIELDS = (
    "start_hour",
    "start_minute",
    "end_hour",
    "end_minute",
    "is_completed",
    "is_skipped",
    "skip_reason",
)


def apply_skip_marks(tasks: Iterable[UnifiedTask], marks: Iterable[SkipMark]) -> list[UnifiedTask]:
    by_source: dict[tuple[OriginalKind, str], SkipMark] = {}
    for mark in marks:
        by_source[(mark.original_kind, mark.original_id)] = mark

    out: list[UnifiedTask] = []
    for task in tasks:
        mark = by_source.get((task.original_kind, task.original_id))
        if mark is not None:
            task = replace(task, is_skipped=True, skip_reason=mark.reason)
        out.append(task)
    return out


def merge_pass(
    current: Mapping[str, UnifiedTask],
    incoming: Iterable[UnifiedTask],
    guarded: frozenset[str],
) -> list[UnifiedTask]:
    """
    Merge a fresh pass into the current collection.

    Unguarded ids: the pass wins wholesale.
    Guarded ids:
    - present locally and in the pass: local GUARDED_FIELDS, pass for the rest
    - present locally only: kept as is (create not confirmed yet)
    - present in the pass only: dropped (delete not confirmed yet)
    Duplicate ids within the pass: first occurrence wins.
    """
    merged: dict[str, UnifiedTask] = {}

    for task in incoming:
        if task.id in merged:
            continue
        if task.id in guarded:
            local = current.get(task.id)
            if local is None:
                continue
            task = replace(task, **{name: getattr(local, name) for name in GUARDED_FIELDS})
        merged[task.id] = task

    for task_id in sorted(guarded):
        if task_id not in merged and task_id in current:
            merged[task_id] = current[task_id]

    return list(merged.values())


class TaskAggregator:
    def __init__(
        self,
        remote: RemoteTaskStore,
        store: TimelineStore,
        guard: EditGuard,
        *,
        tables: SourceTables | None = None,
        meeting_window_days: int = 7,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._remote = remote
        self._store = store
        self._guard = guard
        self._tables = tables or SourceTables()
        self._meeting_window_days = max(0, int(meeting_window_days))
        self._today = today
        self._seq = itertools.count(1)
        self._day: date | None = None

    # ---- sources ----

    async def _fetch_time_blocks(self, user_id: str, day: date) -> list[UnifiedTask]:
        table = self._tables.time_blocks
        dated, recurring = await asyncio.gather(
            self._remote.select(table, [eq("user_id", user_id), eq("date", day.isoformat())]),
            self._remote.select(table, [eq("user_id", user_id), eq("is_recurring", "true")]),
        )

        rows: list[Row] = list(dated)
        for row in recurring:
            projected = adapters.project_recurring_block(row, day)
            if projected is not None:
                rows.append(projected)

        return [t for t in map(adapters.adapt_time_block, rows) if t is not None]

    async def _fetch_meetings(self, user_id: str, day: date) -> list[UnifiedTask]:
        # Project meetings are shared across the team: filtered by date window, not by user.
        last = day + timedelta(days=self._meeting_window_days)
        rows = await self._remote.select(
            self._tables.meetings,
            [gte("date", day.isoformat()), lte("date", last.isoformat())],
        )
        return [t for t in map(adapters.adapt_meeting, rows) if t is not None]

    async def _fetch_todos(self, user_id: str, day: date) -> list[UnifiedTask]:
        rows = await self._remote.select(self._tables.todos, [eq("user_id", user_id)])
        out: list[UnifiedTask] = []
        for row in rows:
            task = adapters.adapt_todo(row, fallback_date=day)
            if task is not None:
                out.append(task)
        return out

    async def _fetch_skip_marks(self, user_id: str) -> list[SkipMark]:
        rows = await self._remote.select(self._tables.skips, [eq("user_id", user_id)])
        return [m for m in map(adapters.adapt_skip_record, rows) if m is not None]

    # ---- public API ----

    async def fetch_all(self, user_id: str, *, day: date | None = None) -> list[UnifiedTask]:
        """
        Run one aggregation pass and publish it.

        A pass without `day` loads the day the last explicit pass asked for
        (today until one has).

        Returns the published collection. If a later-started pass already
        published, this pass is discarded and the current collection is returned.
        """
        seq = next(self._seq)
        if day is not None:
            self._day = day
        day = self._day or self._today()

        names = ("time_blocks", "meetings", "todos", "skips")
        results = await asyncio.gather(
            self._fetch_time_blocks(user_id, day),
            self._fetch_meetings(user_id, day),
            self._fetch_todos(user_id, day),
            self._fetch_skip_marks(user_id),
            return_exceptions=True,
        )

        loaded: dict[str, list] = {}
        failed: list[str] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                err = SourceUnavailable(name, result)
                logger.warning("%s (pass seq=%s); treating as empty", err, seq)
                failed.append(name)
                loaded[name] = []
            else:
                loaded[name] = result

        tasks = [*loaded["time_blocks"], *loaded["meetings"], *loaded["todos"]]
        tasks = apply_skip_marks(tasks, loaded["skips"])

        # Guard membership is read once for the whole merge.
        guarded = self._guard.snapshot()
        merged = merge_pass(self._store.as_dict(), tasks, guarded)

        logger.info(
            "Aggregation pass seq=%s day=%s: %d tasks (blocks=%d meetings=%d todos=%d) guarded=%d failed=%s",
            seq,
            day.isoformat(),
            len(merged),
            len(loaded["time_blocks"]),
            len(loaded["meetings"]),
            len(loaded["todos"]),
            len(guarded),
            ",".join(failed) or "-",
        )

        if not self._store.publish_pass(seq, merged):
            return self._store.snapshot()
        return merged
