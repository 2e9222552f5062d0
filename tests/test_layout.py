# tests/test_layout.py

from __future__ import annotations

import random
from datetime import timedelta

from focus_timeline.layout.overlap import compute_layout, layout_by_id, overlaps
from focus_timeline.sync.adapters import adapt_time_block, adapt_todo

from .fakes import DAY, block_row, todo_row


def _block(block_id: str, start: str, end: str, **kw):
    task = adapt_time_block(block_row(block_id, start, end, **kw))
    assert task is not None
    return task


def _cols(layouts):
    return {lay.task_id: (lay.column, lay.total_columns) for lay in layouts}


def test_single_task_gets_full_width() -> None:
    assert _cols(compute_layout([_block("a", "09:00", "10:00")])) == {"a": (0, 1)}


def test_overlapping_tasks_render_side_by_side() -> None:
    tasks = [_block("a", "09:00", "10:00"), _block("b", "09:30", "10:30")]
    assert _cols(compute_layout(tasks)) == {"a": (0, 2), "b": (1, 2)}


def test_identical_intervals_take_separate_columns() -> None:
    tasks = [_block("a", "09:00", "10:00"), _block("b", "09:00", "10:00")]

    cols = _cols(compute_layout(tasks))

    assert {column for column, _ in cols.values()} == {0, 1}
    assert all(total == 2 for _, total in cols.values())


def test_touching_boundaries_do_not_overlap() -> None:
    tasks = [_block("a", "09:00", "10:00"), _block("b", "10:00", "11:00")]
    assert _cols(compute_layout(tasks)) == {"a": (0, 1), "b": (0, 1)}


def test_columns_are_reused_and_width_counts_every_overlapping_column() -> None:
    tasks = [
        _block("a", "09:00", "10:00"),
        _block("b", "09:00", "11:00"),
        _block("c", "10:00", "12:00"),
        _block("d", "10:30", "11:30"),
    ]

    cols = _cols(compute_layout(tasks))

    assert cols["a"] == (0, 2)
    assert cols["b"] == (1, 3)
    assert cols["c"] == (0, 3)
    assert cols["d"] == (2, 3)


def test_equal_starts_keep_input_order() -> None:
    tasks = [_block("second", "09:00", "10:00"), _block("first", "09:00", "10:00")]

    cols = _cols(compute_layout(tasks))

    assert cols["second"][0] == 0
    assert cols["first"][0] == 1
    assert _cols(compute_layout(tasks)) == cols


def test_todos_and_other_days_are_excluded() -> None:
    todo = adapt_todo(todo_row("t1", "Call"), fallback_date=DAY)
    tomorrow = _block("x", "09:00", "10:00", day=DAY + timedelta(days=1))
    today = _block("a", "09:00", "10:00")

    layouts = compute_layout([todo, tomorrow, today], DAY)

    assert [lay.task_id for lay in layouts] == ["a"]


def test_task_without_extent_gets_column_zero() -> None:
    tasks = [_block("a", "09:00", "10:00"), _block("empty", "09:30", "09:30"), _block("inv", "11:00", "10:00")]

    cols = _cols(compute_layout(tasks))

    assert cols["empty"] == (0, 1)
    assert cols["inv"] == (0, 1)
    assert cols["a"] == (0, 1)


def test_layout_by_id_indexes_results() -> None:
    layouts = compute_layout([_block("a", "09:00", "10:00")])
    assert layout_by_id(layouts)["a"].total_columns == 1


def test_random_days_never_share_a_column_while_overlapping() -> None:
    rng = random.Random(1234)

    for _ in range(50):
        tasks = []
        for i in range(rng.randint(1, 12)):
            start = rng.randrange(0, 22 * 60, 15)
            end = start + rng.choice([15, 30, 45, 60, 90, 120])
            tasks.append(_block(f"t{i}", f"{start // 60:02d}:{start % 60:02d}", f"{end // 60:02d}:{end % 60:02d}"))

        lay = layout_by_id(compute_layout(tasks))
        assert set(lay) == {t.id for t in tasks}

        for a in tasks:
            la = lay[a.id]
            assert 0 <= la.column < la.total_columns
            overlapping_columns = set()
            for b in tasks:
                if a.id == b.id:
                    continue
                if overlaps(a.start_minutes, a.end_minutes, b.start_minutes, b.end_minutes):
                    assert la.column != lay[b.id].column
                    assert la.total_columns >= 2
                    overlapping_columns.add(lay[b.id].column)
            assert la.total_columns == 1 + len(overlapping_columns)
