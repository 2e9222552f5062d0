# src/focus_timeline/timeline_api.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime

from .core.errors import SyncError
from .core.models import KindTag, NewTaskFields, TaskLayout, UnifiedTask
from .core.ports import TasksListener
from .core.store import TimelineStore
from .layout.overlap import compute_layout
from .sync.aggregator import TaskAggregator
from .sync.coordinator import (
    Create,
    Delete,
    Duplicate,
    Intent,
    Move,
    Resize,
    Skip,
    SyncCoordinator,
    ToggleComplete,
    Unskip,
)

logger = logging.getLogger(__name__)


class TimelineService:
    """
    Surface consumed by a rendering host.

    Mutations never raise SyncError: a failed write is logged, the timeline
    has already been resynced, and the method returns False.
    """

    def __init__(
        self,
        store: TimelineStore,
        aggregator: TaskAggregator,
        coordinator: SyncCoordinator,
        *,
        user_id: str,
    ) -> None:
        self._store = store
        self._aggregator = aggregator
        self._coordinator = coordinator
        self._user_id = user_id

    @property
    def store(self) -> TimelineStore:
        return self._store

    def subscribe(self, on_update: TasksListener) -> Callable[[], None]:
        return self._store.subscribe(on_update)

    def layout(self, tasks: Iterable[UnifiedTask] | None = None, day: date | None = None) -> list[TaskLayout]:
        return compute_layout(self._store.snapshot() if tasks is None else tasks, day)

    async def refresh(self, day: date | None = None) -> list[UnifiedTask]:
        return await self._aggregator.fetch_all(self._user_id, day=day)

    # ---- mutations ----

    async def _apply(self, intent: Intent) -> bool:
        try:
            await self._coordinator.apply(intent)
        except SyncError as exc:
            logger.warning("Change reverted: %s", exc)
            return False
        return True

    async def move(self, task_id: str, delta_minutes: float) -> bool:
        return await self._apply(Move(task_id, delta_minutes))

    async def resize(self, task_id: str, delta_minutes: float) -> bool:
        return await self._apply(Resize(task_id, delta_minutes))

    async def toggle_complete(self, task_id: str) -> bool:
        return await self._apply(ToggleComplete(task_id))

    async def skip(self, task_id: str, reason: str | None = None) -> bool:
        return await self._apply(Skip(task_id, reason))

    async def unskip(self, task_id: str) -> bool:
        return await self._apply(Unskip(task_id))

    async def delete(self, task_id: str) -> bool:
        return await self._apply(Delete(task_id))

    async def create(self, fields: NewTaskFields) -> str | None:
        """Returns the new task id, or None if the write failed."""
        try:
            result = await self._coordinator.apply(Create(fields))
        except SyncError as exc:
            logger.warning("Create reverted: %s", exc)
            return None
        return result.task_id

    async def duplicate(self, task_id: str) -> str | None:
        try:
            result = await self._coordinator.apply(Duplicate(task_id))
        except SyncError as exc:
            logger.warning("Duplicate reverted: %s", exc)
            return None
        return result.task_id

    # ---- read helpers ----

    def tasks_for_day(self, day: date) -> list[UnifiedTask]:
        """Tasks on `day`, ordered by start time."""
        tasks = [t for t in self._store.snapshot() if t.date == day]
        return sorted(tasks, key=lambda t: (t.start_minutes, t.end_minutes))

    def _open_tasks(self, day: date) -> list[UnifiedTask]:
        return [t for t in self.tasks_for_day(day) if not t.is_completed and not t.is_skipped]

    def current_task(self, now: datetime) -> UnifiedTask | None:
        for task in self._open_tasks(now.date()):
            if task.kind.tag is not KindTag.TODO and task.is_now(now):
                return task
        return None

    def next_task(self, now: datetime) -> UnifiedTask | None:
        for task in self._open_tasks(now.date()):
            if task.is_upcoming(now):
                return task
        return None

    def completed_count(self, day: date) -> int:
        return sum(1 for t in self.tasks_for_day(day) if t.is_completed)
