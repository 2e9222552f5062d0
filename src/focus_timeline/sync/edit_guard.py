# src/focus_timeline/sync/edit_guard.py

from __future__ import annotations

"""
Edit guard.

Registry of task ids under local, unconfirmed edit. While an id is guarded,
an aggregation pass keeps the local time fields and completion/skip flags for
that id instead of the freshly fetched ones.

Two ways to use it:
- explicit begin()/end() (idempotent, no expiry; a missing end() leaks the lock)
- hold(): scoped acquisition, released on every exit path

An id taken with begin() stays guarded until end(), even when a hold() on the
same id exits in between.
"""

import contextlib
import logging
import threading
from collections.abc import Iterator

logger = logging.getLogger(__name__)


class EditGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._guarded: set[str] = set()
        self._holds: dict[str, int] = {}
        self._explicit: set[str] = set()

    def begin(self, task_id: str) -> None:
        with self._lock:
            if task_id in self._explicit:
                return
            self._explicit.add(task_id)
            self._guarded.add(task_id)
        logger.debug("Guard begin task_id=%s", task_id)

    def end(self, task_id: str) -> None:
        with self._lock:
            if task_id not in self._guarded:
                return
            self._guarded.discard(task_id)
            self._explicit.discard(task_id)
            self._holds.pop(task_id, None)
        logger.debug("Guard end task_id=%s", task_id)

    def is_guarded(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._guarded

    def snapshot(self) -> frozenset[str]:
        """Consistent view of all guarded ids (read once per merge pass)."""
        with self._lock:
            return frozenset(self._guarded)

    def __len__(self) -> int:
        with self._lock:
            return len(self._guarded)

    @contextlib.contextmanager
    def hold(self, task_id: str) -> Iterator[None]:
        """
        Guard task_id for the duration of the block.

        Overlapping holds on the same id are counted; the id is released when
        the last one exits, unless begin() also holds it. An explicit end()
        inside the block wins.
        """
        with self._lock:
            self._holds[task_id] = self._holds.get(task_id, 0) + 1
            self._guarded.add(task_id)
        logger.debug("Guard hold task_id=%s", task_id)
        try:
            yield
        finally:
            released = False
            with self._lock:
                count = self._holds.get(task_id, 0) - 1
                if count > 0:
                    self._holds[task_id] = count
                else:
                    self._holds.pop(task_id, None)
                    if task_id in self._guarded and task_id not in self._explicit:
                        self._guarded.discard(task_id)
                        released = True
            if released:
                logger.debug("Guard release task_id=%s", task_id)
