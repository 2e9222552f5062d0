# src/focus_timeline/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, runs the first aggregation pass, then:
- auto-refresh loop in the background,
- console REPL in the foreground (input() runs in a worker thread).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime

from ..config import get_settings
from ..logging_setup import setup_logging
from ..sync.refresh import run_auto_refresh
from .bootstrap import AppState, create_app_state
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console started (user_id=%s offline=%s).", state.user_id, state.offline)
    _print_ts("[CONSOLE] Use /help for commands, /today for the timeline, /exit to quit.\n")

    while True:
        try:
            line = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = await command_registry.handle(state, line, emit=_print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list them."
        _print_ts(response)

    logger.info("Console finished.")


async def _run(state: AppState) -> None:
    settings = state.settings

    try:
        tasks = await state.service.refresh()
        logger.info("Initial load: %d tasks.", len(tasks))
    except Exception:
        logger.exception("Initial load failed.")

    refresher = asyncio.create_task(
        run_auto_refresh(
            state.aggregator,
            state.user_id,
            interval_seconds=getattr(settings, "refresh_interval_seconds", 300.0),
        ),
        name="auto-refresh",
    )

    try:
        await run_console_loop(state)
    finally:
        refresher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await refresher
        try:
            await state.remote.aclose()
        except Exception:
            logger.debug("Remote client close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/focus")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "focus"))

    state = create_app_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
