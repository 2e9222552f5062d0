# tests/fakes.py

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from focus_timeline.core.errors import RemoteStoreError
from focus_timeline.core.models import UnifiedTask
from focus_timeline.core.ports import Filter, Row
from focus_timeline.remote.offline import OfflineTaskStore

# A Wednesday (weekday 3 with Sunday = 0).
DAY = date(2025, 3, 12)


@dataclass(slots=True)
class RemoteCall:
    method: str
    table: str
    filters: list[Filter]
    payload: Any = None


class FakeRemoteStore(OfflineTaskStore):
    """
    In-memory RemoteTaskStore for unit tests.

    - Records every call for assertions
    - Failure injection per table (reads) or for all writes
    - write_gate: when set, writes wait on it before touching the tables
    - select_gates: one-shot per-table gates for reads
    """

    def __init__(self, tables: dict[str, list[Row]] | None = None) -> None:
        super().__init__(tables)
        self.calls: list[RemoteCall] = []
        self.failing_selects: set[str] = set()
        self.fail_writes = False
        self.write_gate: asyncio.Event | None = None
        self.select_gates: dict[str, asyncio.Event] = {}

    def writes(self) -> list[RemoteCall]:
        return [c for c in self.calls if c.method != "select"]

    async def _before_write(self, table: str) -> None:
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.fail_writes:
            raise RemoteStoreError(table=table, message="injected failure", status_code=500)

    async def select(self, table: str, filters: Sequence[Filter] = ()) -> list[Row]:
        self.calls.append(RemoteCall("select", table, list(filters)))
        gate = self.select_gates.pop(table, None)
        if gate is not None:
            await gate.wait()
        if table in self.failing_selects:
            raise RemoteStoreError(table=table, message="injected failure", status_code=503)
        return await super().select(table, filters)

    async def insert(self, table: str, row: Row) -> list[Row]:
        self.calls.append(RemoteCall("insert", table, [], dict(row)))
        await self._before_write(table)
        return await super().insert(table, row)

    async def update(self, table: str, filters: Sequence[Filter], patch: Row) -> None:
        self.calls.append(RemoteCall("update", table, list(filters), dict(patch)))
        await self._before_write(table)
        await super().update(table, filters, patch)

    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        self.calls.append(RemoteCall("delete", table, list(filters)))
        await self._before_write(table)
        await super().delete(table, filters)


@dataclass(slots=True)
class RecordingListener:
    """Subscriber that keeps every published collection."""

    updates: list[list[UnifiedTask]] = field(default_factory=list)

    def __call__(self, tasks: list[UnifiedTask]) -> None:
        self.updates.append(tasks)

    @property
    def last(self) -> list[UnifiedTask]:
        return self.updates[-1]


def block_row(
    block_id: str,
    start: str,
    end: str,
    *,
    day: date = DAY,
    title: str | None = None,
    block_type: str = "focus",
    user_id: int = 42,
    **extra: Any,
) -> Row:
    row: Row = {
        "id": block_id,
        "user_id": user_id,
        "date": day.isoformat(),
        "start_time": start,
        "end_time": end,
        "title": title or f"Block {block_id}",
        "type": block_type,
        "completed": False,
        "is_recurring": False,
    }
    row.update(extra)
    return row


def meeting_row(
    meeting_id: int,
    time: str,
    duration: int | None,
    *,
    day: date = DAY,
    title: str | None = None,
    project_id: int | None = 7,
    **extra: Any,
) -> Row:
    row: Row = {
        "id": meeting_id,
        "title": title or f"Meeting {meeting_id}",
        "date": day.isoformat(),
        "time": time,
        "duration": duration,
        "project_id": project_id,
        "completed": False,
    }
    row.update(extra)
    return row


def todo_row(todo_id: str, name: str | None, *, start_time: str | None = None, user_id: int = 42, **extra: Any) -> Row:
    row: Row = {
        "id": todo_id,
        "user_id": user_id,
        "task_name": name,
        "priority": "high",
        "completed": False,
        "start_date": DAY.isoformat(),
        "start_time": start_time,
    }
    row.update(extra)
    return row
