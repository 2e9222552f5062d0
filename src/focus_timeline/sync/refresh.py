# src/focus_timeline/sync/refresh.py

from __future__ import annotations

"""
Auto-refresh.

A small polling loop that re-runs an aggregation pass every interval_seconds.
Guarded tasks survive it (see merge_pass), so it can run while edits are in
flight. To stop it, cancel the coroutine/task.
"""

import asyncio
import logging

from .aggregator import TaskAggregator

logger = logging.getLogger(__name__)


async def run_auto_refresh(
    aggregator: TaskAggregator,
    user_id: str,
    *,
    interval_seconds: float = 300.0,
    run_immediately: bool = False,
) -> None:
    sleep_s = max(1.0, float(interval_seconds))

    if not run_immediately:
        await asyncio.sleep(sleep_s)

    while True:
        try:
            await aggregator.fetch_all(user_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Auto-refresh pass failed user_id=%s", user_id)

        await asyncio.sleep(sleep_s)
