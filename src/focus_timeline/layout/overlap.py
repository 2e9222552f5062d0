# src/focus_timeline/layout/overlap.py

"""
Overlap layout: interval partitioning with column reuse.

Given the entities of one day, assign each a column so overlapping entities
render side by side. Pure and synchronous.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from ..core.models import KindTag, TaskLayout, UnifiedTask


@dataclass(frozen=True, slots=True)
class _Span:
    task_id: str
    start: int
    end: int


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval test: touching boundaries do not overlap."""
    return a_start < b_end and b_start < a_end


def _has_extent(task: UnifiedTask) -> bool:
    return task.end_minutes > task.start_minutes


def compute_layout(tasks: Iterable[UnifiedTask], day: date | None = None) -> list[TaskLayout]:
    """
    Column assignment for the laid-out entities of one day.

    Todos are never laid out. Entities without a positive extent get
    column 0 of a width-1 group. Equal starts keep input order.

    total_columns is 1 + the number of other columns holding at least one
    entity that overlaps this one. It can exceed the number of columns
    the greedy pass created around this entity.
    """
    candidates = _unique(t for t in tasks if t.kind.tag is not KindTag.TODO and (day is None or t.date == day))

    out: dict[str, TaskLayout] = {}
    spans: list[_Span] = []
    for task in candidates:
        if not _has_extent(task):
            out[task.id] = TaskLayout(task_id=task.id, column=0, total_columns=1)
            continue
        spans.append(_Span(task.id, task.start_minutes, task.end_minutes))

    # sorted() is stable
    spans = sorted(spans, key=lambda s: s.start)

    columns: list[list[_Span]] = []
    column_of: dict[str, int] = {}
    for span in spans:
        for idx, column in enumerate(columns):
            if not any(overlaps(span.start, span.end, other.start, other.end) for other in column):
                column.append(span)
                column_of[span.task_id] = idx
                break
        else:
            columns.append([span])
            column_of[span.task_id] = len(columns) - 1

    for span in spans:
        own = column_of[span.task_id]
        others = sum(
            1
            for idx, column in enumerate(columns)
            if idx != own and any(overlaps(span.start, span.end, o.start, o.end) for o in column)
        )
        out[span.task_id] = TaskLayout(task_id=span.task_id, column=own, total_columns=1 + others)

    # Preserve the caller's order.
    return [out[t.id] for t in candidates]


def _unique(tasks: Iterable[UnifiedTask]) -> list[UnifiedTask]:
    seen: set[str] = set()
    result: list[UnifiedTask] = []
    for t in tasks:
        if t.id not in seen:
            seen.add(t.id)
            result.append(t)
    return result


def layout_by_id(layouts: Iterable[TaskLayout]) -> dict[str, TaskLayout]:
    return {layout.task_id: layout for layout in layouts}
