# src/focus_timeline/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the remote store, timeline store, edit guard, aggregator,
  coordinator and service into AppState.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import get_settings
from ..core.ports import RemoteTaskStore
from ..core.store import TimelineStore
from ..remote.client import SupabaseRestClient
from ..remote.offline import OfflineTaskStore
from ..sync.aggregator import TaskAggregator
from ..sync.coordinator import SyncCoordinator
from ..sync.edit_guard import EditGuard
from ..timeline_api import TimelineService

logger = logging.getLogger(__name__)

OFFLINE_USER_ID = "local"


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    user_id: str
    remote: RemoteTaskStore
    store: TimelineStore
    guard: EditGuard
    aggregator: TaskAggregator
    coordinator: SyncCoordinator
    service: TimelineService

    offline: bool = False


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_app_state(*, settings=None, remote: RemoteTaskStore | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(). If remote is None,
    a SupabaseRestClient is built from settings; without URL/key the app
    runs against an in-memory store.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    offline = False
    if remote is None:
        try:
            remote = SupabaseRestClient.from_settings(settings)
        except ValueError:
            # Fallback for demos / local runs without a configured project.
            logger.warning("Supabase URL/key not configured; using an in-memory store.")
            remote = OfflineTaskStore()
            offline = True

    user_id = settings.user_id or OFFLINE_USER_ID
    tables = settings.tables

    store = TimelineStore()
    guard = EditGuard()
    aggregator = TaskAggregator(
        remote,
        store,
        guard,
        tables=tables,
        meeting_window_days=settings.meeting_window_days,
    )
    coordinator = SyncCoordinator(remote, store, guard, aggregator, user_id=user_id, tables=tables)
    service = TimelineService(store, aggregator, coordinator, user_id=user_id)

    return AppState(
        settings=settings,
        user_id=user_id,
        remote=remote,
        store=store,
        guard=guard,
        aggregator=aggregator,
        coordinator=coordinator,
        service=service,
        offline=offline,
    )
