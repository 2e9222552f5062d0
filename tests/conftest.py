# tests/conftest.py

from __future__ import annotations

import itertools
from pathlib import Path
from types import SimpleNamespace

import pytest

from focus_timeline.cli.bootstrap import AppState, create_app_state
from focus_timeline.config import SourceTables
from focus_timeline.core.store import TimelineStore
from focus_timeline.sync.aggregator import TaskAggregator
from focus_timeline.sync.coordinator import SyncCoordinator
from focus_timeline.sync.edit_guard import EditGuard
from focus_timeline.timeline_api import TimelineService

from .fakes import DAY, FakeRemoteStore, block_row, meeting_row, todo_row

USER_ID = "42"


@pytest.fixture()
def tables() -> SourceTables:
    return SourceTables()


@pytest.fixture()
def remote(tables: SourceTables) -> FakeRemoteStore:
    """Seeded with one item from every source on DAY."""
    return FakeRemoteStore(
        {
            tables.time_blocks: [block_row("tb-1", "09:00:00", "10:00:00", title="Deep work")],
            tables.meetings: [meeting_row(501, "11:00:00", 30, title="Standup")],
            tables.todos: [todo_row("t1", "Pay rent", start_time="14:00:00")],
            tables.skips: [],
        }
    )


@pytest.fixture()
def store() -> TimelineStore:
    return TimelineStore()


@pytest.fixture()
def guard() -> EditGuard:
    return EditGuard()


@pytest.fixture()
def aggregator(remote, store, guard, tables) -> TaskAggregator:
    return TaskAggregator(remote, store, guard, tables=tables, meeting_window_days=7, today=lambda: DAY)


@pytest.fixture()
def coordinator(remote, store, guard, aggregator, tables) -> SyncCoordinator:
    counter = itertools.count(1)
    return SyncCoordinator(
        remote,
        store,
        guard,
        aggregator,
        user_id=USER_ID,
        tables=tables,
        new_id=lambda: f"new-{next(counter)}",
    )


@pytest.fixture()
def service(store, aggregator, coordinator) -> TimelineService:
    return TimelineService(store, aggregator, coordinator, user_id=USER_ID)


@pytest.fixture()
def settings(tmp_path: Path, tables: SourceTables) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_app_state.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="focus-test",
        data_dir=tmp_path / "focus",
        user_id=USER_ID,
        supabase_url="",
        supabase_key=None,
        tables=tables,
        meeting_window_days=7,
        refresh_interval_seconds=300.0,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, remote: FakeRemoteStore) -> AppState:
    return create_app_state(settings=settings, remote=remote)
