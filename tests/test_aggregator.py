# tests/test_aggregator.py

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date, timedelta

import pytest

from focus_timeline.core.models import OriginalKind
from focus_timeline.sync.adapters import adapt_time_block
from focus_timeline.sync.aggregator import merge_pass

from .conftest import USER_ID
from .fakes import DAY, RecordingListener, block_row, meeting_row


def _by_id(tasks):
    return {t.id: t for t in tasks}


@pytest.mark.asyncio
async def test_fetch_all_merges_every_source_and_publishes_once(aggregator, store) -> None:
    listener = RecordingListener()
    store.subscribe(listener)

    tasks = await aggregator.fetch_all(USER_ID)

    assert set(_by_id(tasks)) == {"tb-1", "meeting-501", "todo-t1"}
    assert len(listener.updates) == 1
    assert set(_by_id(listener.last)) == set(_by_id(tasks))


@pytest.mark.asyncio
async def test_fetch_all_is_idempotent_without_remote_changes(aggregator, store) -> None:
    first = await aggregator.fetch_all(USER_ID)
    second = await aggregator.fetch_all(USER_ID)

    assert _by_id(first) == _by_id(second)
    assert _by_id(store.snapshot()) == _by_id(second)


@pytest.mark.asyncio
async def test_guarded_fields_survive_a_refresh(aggregator, store, guard, remote, tables) -> None:
    await aggregator.fetch_all(USER_ID)
    local = store.require("tb-1").with_times(10 * 60, 11 * 60)
    store.put_local(local)
    guard.begin("tb-1")

    # Remote still has the old time but a new title.
    remote.rows(tables.time_blocks)[0]["title"] = "Renamed"
    await aggregator.fetch_all(USER_ID)

    task = store.require("tb-1")
    assert (task.start_hour, task.end_hour) == (10, 11)
    assert task.title == "Renamed"

    guard.end("tb-1")
    await aggregator.fetch_all(USER_ID)
    assert store.require("tb-1").start_hour == 9


@pytest.mark.asyncio
async def test_guarded_membership_follows_the_local_side(aggregator, store, guard, remote, tables) -> None:
    await aggregator.fetch_all(USER_ID)
    block = store.require("tb-1")

    # Unconfirmed delete: gone locally, still remote.
    store.remove_local("tb-1")
    guard.begin("tb-1")
    # Unconfirmed create: local only.
    store.put_local(replace(block, id="new-block", original_id="new-block").with_times(15 * 60, 16 * 60))
    guard.begin("new-block")

    tasks = _by_id(await aggregator.fetch_all(USER_ID))

    assert "tb-1" not in tasks
    assert "new-block" in tasks


def test_merge_pass_first_occurrence_wins() -> None:
    a = adapt_time_block(block_row("dup", "09:00", "10:00", title="first"))
    b = adapt_time_block(block_row("dup", "12:00", "13:00", title="second"))

    merged = merge_pass({}, [a, b], frozenset())

    assert len(merged) == 1
    assert merged[0].title == "first"


@pytest.mark.asyncio
async def test_failed_source_is_treated_as_empty(aggregator, store, remote, tables) -> None:
    remote.failing_selects.add(tables.meetings)

    tasks = _by_id(await aggregator.fetch_all(USER_ID))

    assert "meeting-501" not in tasks
    assert {"tb-1", "todo-t1"} <= set(tasks)
    assert store.published_seq == 1


@pytest.mark.asyncio
async def test_skip_marks_flag_matching_tasks(aggregator, remote, tables) -> None:
    remote.rows(tables.skips).append(
        {"user_id": 42, "task_id": "501", "task_type": "meeting", "skip_reason": "conflict"}
    )

    tasks = _by_id(await aggregator.fetch_all(USER_ID))

    assert tasks["meeting-501"].is_skipped
    assert tasks["meeting-501"].skip_reason == "conflict"
    assert not tasks["tb-1"].is_skipped


@pytest.mark.asyncio
async def test_recurring_blocks_are_projected_onto_the_day(aggregator, remote, tables) -> None:
    remote.rows(tables.time_blocks).append(
        block_row(
            "rec-1",
            "07:00:00",
            "07:30:00",
            day=DAY - timedelta(days=14),
            is_recurring=True,
            recurring_days=[DAY.isoweekday() % 7],
        )
    )

    tasks = _by_id(await aggregator.fetch_all(USER_ID))

    assert tasks["rec-1"].date == DAY
    assert tasks["rec-1"].is_recurring


@pytest.mark.asyncio
async def test_meetings_outside_the_window_are_not_loaded(aggregator, remote, tables) -> None:
    remote.rows(tables.meetings).append(meeting_row(900, "10:00", 30, day=DAY + timedelta(days=10)))

    tasks = _by_id(await aggregator.fetch_all(USER_ID))

    assert "meeting-900" not in tasks
    assert tasks["meeting-501"].original_kind is OriginalKind.MEETING


@pytest.mark.asyncio
async def test_stale_pass_is_discarded(aggregator, store, remote, tables) -> None:
    gate = asyncio.Event()
    remote.select_gates[tables.meetings] = gate

    slow = asyncio.create_task(aggregator.fetch_all(USER_ID))
    for _ in range(20):
        if tables.meetings not in remote.select_gates:
            break
        await asyncio.sleep(0)
    assert tables.meetings not in remote.select_gates

    remote.rows(tables.time_blocks)[0]["title"] = "Fresh"
    await aggregator.fetch_all(USER_ID)
    assert store.published_seq == 2

    gate.set()
    result = _by_id(await slow)

    assert store.published_seq == 2
    assert store.require("tb-1").title == "Fresh"
    assert result["tb-1"].title == "Fresh"


def test_publish_pass_rejects_older_sequence(store) -> None:
    assert store.publish_pass(2, [])
    assert not store.publish_pass(1, [])
    assert store.published_seq == 2


@pytest.mark.asyncio
async def test_fetch_for_explicit_day(aggregator) -> None:
    tasks = await aggregator.fetch_all(USER_ID, day=date(2030, 1, 1))
    # Todos are not filtered by date; blocks and meetings are.
    assert {t.id for t in tasks} == {"todo-t1"}
