# src/focus_timeline/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the remote store swappable and makes testing easier.
"""

from collections.abc import Callable, Sequence
from typing import Any, Protocol

from .models import UnifiedTask

Row = dict[str, Any]
# PostgREST-style filter: ("user_id", "eq.42"), ("date", "gte.2025-01-01").
Filter = tuple[str, str]

TasksListener = Callable[[list[UnifiedTask]], None]


class RemoteTaskStore(Protocol):
    """
    REST-style task store: one resource collection per source table.

    Every method raises RemoteStoreError on transport failure or non-2xx.
    """

    async def select(self, table: str, filters: Sequence[Filter] = ()) -> list[Row]: ...

    async def insert(self, table: str, row: Row) -> list[Row]: ...

    async def update(self, table: str, filters: Sequence[Filter], patch: Row) -> None: ...

    async def delete(self, table: str, filters: Sequence[Filter]) -> None: ...

    async def aclose(self) -> None: ...


def eq(column: str, value: object) -> Filter:
    return (column, f"eq.{value}")


def gte(column: str, value: object) -> Filter:
    return (column, f"gte.{value}")


def lte(column: str, value: object) -> Filter:
    return (column, f"lte.{value}")
