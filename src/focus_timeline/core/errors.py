# src/focus_timeline/core/errors.py

from __future__ import annotations

from typing import Any


class FocusTimelineError(Exception):
    """Base class for errors raised by the timeline core."""


class RemoteStoreError(FocusTimelineError):
    """Raised when the remote task store returns non-2xx or cannot be reached."""

    def __init__(self, *, table: str, message: str, status_code: int | None = None) -> None:
        self.table = table
        self.status_code = status_code
        self.message = message
        status = status_code if status_code is not None else "transport"
        super().__init__(f"Remote store request failed table={table} ({status}): {message}")


class SourceUnavailable(FocusTimelineError):
    """One source fetch failed during an aggregation pass (logged, never fatal)."""

    def __init__(self, source: str, cause: BaseException) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"Source {source} unavailable: {cause}")


class SyncError(FocusTimelineError):
    """
    A mutation's remote write failed.

    Raised only after recovery (a full resync) has already been attempted,
    so the local collection reflects the remote state again.
    """

    def __init__(self, intent: Any, cause: BaseException) -> None:
        self.intent = intent
        self.cause = cause
        super().__init__(f"Sync failed for {type(intent).__name__}: {cause}")


class UnknownTaskError(FocusTimelineError, KeyError):
    """An intent referenced a task id that is not in the timeline store."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(task_id)

    def __str__(self) -> str:
        return f"Unknown task id: {self.task_id}"
