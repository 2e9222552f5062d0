# src/focus_timeline/core/store.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from .errors import UnknownTaskError
from .models import UnifiedTask
from .ports import TasksListener

logger = logging.getLogger(__name__)


class TimelineStore:
    """
    Single owner of the in-memory task collection.

    Writers:
    - TaskAggregator publishes whole passes (publish_pass)
    - SyncCoordinator applies optimistic edits (put_local / remove_local)

    Everything else reads snapshots and subscribes for updates.
    All calls are expected on the event loop thread.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, UnifiedTask] = {}
        self._listeners: list[TasksListener] = []
        self._published_seq = 0

    # ---- reads ----

    def snapshot(self) -> list[UnifiedTask]:
        return list(self._tasks.values())

    def as_dict(self) -> dict[str, UnifiedTask]:
        return dict(self._tasks)

    def get(self, task_id: str) -> UnifiedTask | None:
        return self._tasks.get(task_id)

    def require(self, task_id: str) -> UnifiedTask:
        task = self._tasks.get(task_id)
        if task is None:
            raise UnknownTaskError(task_id)
        return task

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def published_seq(self) -> int:
        return self._published_seq

    # ---- subscriptions ----

    def subscribe(self, listener: TasksListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def _notify(self) -> None:
        tasks = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(list(tasks))
            except Exception:
                logger.exception("Timeline listener failed listener=%r", listener)

    # ---- writes ----

    def publish_pass(self, seq: int, tasks: Iterable[UnifiedTask]) -> bool:
        """
        Replace the collection with an aggregation pass result.

        Returns False (and publishes nothing) when a later-started pass was
        already published.
        """
        if seq < self._published_seq:
            logger.info("Discarding stale aggregation pass seq=%s (published=%s)", seq, self._published_seq)
            return False

        self._tasks = {t.id: t for t in tasks}
        self._published_seq = seq
        logger.debug("Published pass seq=%s tasks=%d", seq, len(self._tasks))
        self._notify()
        return True

    def put_local(self, task: UnifiedTask) -> None:
        """Insert or replace one entity (optimistic edit)."""
        self._tasks[task.id] = task
        self._notify()

    def remove_local(self, task_id: str) -> UnifiedTask | None:
        task = self._tasks.pop(task_id, None)
        if task is not None:
            self._notify()
        return task

    def clear(self) -> None:
        self._tasks = {}
        self._notify()
