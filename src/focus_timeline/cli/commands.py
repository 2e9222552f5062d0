# src/focus_timeline/cli/commands.py

from __future__ import annotations

import inspect
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import cast

from ..core.errors import UnknownTaskError
from ..core.models import NewTaskFields, UnifiedTask
from ..layout.overlap import layout_by_id
from ..sync.adapters import parse_time_components
from .bootstrap import AppState

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console host (/help, /today, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                result = cast(CommandHandler3, handler)(state, args, emit)
            else:
                result = cast(CommandHandler2, handler)(state, args)
            if inspect.isawaitable(result):
                result = await result
        except UnknownTaskError as exc:
            return f"{exc}. Use /today to list task ids."

        return cast(str, result)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_minutes(raw: str) -> float | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_day(args: list[str]) -> date | None:
    if not args:
        return date.today()
    try:
        return date.fromisoformat(args[0])
    except ValueError:
        return None


def _format_task(task: UnifiedTask, column: str) -> str:
    flags = []
    if task.is_completed:
        flags.append("done")
    if task.is_skipped:
        flags.append(f"skipped: {task.skip_reason}" if task.skip_reason else "skipped")
    flag_str = f" ({', '.join(flags)})" if flags else ""
    return (
        f"  {task.start_hour:02d}:{task.start_minute:02d}-{task.end_hour:02d}:{task.end_minute:02d}"
        f" {column:<5} [{task.kind.display_name}] {task.title}{flag_str}  id={task.id}"
    )


def _outcome(ok: bool, done_text: str) -> str:
    return done_text if ok else "Remote update failed; timeline was reloaded."


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    mode = "OFFLINE (in-memory)" if state.offline else "REMOTE"
    return (
        "Status:\n"
        f"  Store: {mode}\n"
        f"  User: {state.user_id}\n"
        f"  Tasks loaded: {len(state.store)}\n"
        f"  Edits in flight: {len(state.guard)}"
    )


def cmd_today(state: AppState, args: list[str]) -> str:
    """
    /today              -> tasks for today with layout columns
    /today YYYY-MM-DD   -> tasks for that day
    """
    day = _parse_day(args)
    if day is None:
        return "Usage: /today [YYYY-MM-DD]"

    tasks = state.service.tasks_for_day(day)
    if not tasks:
        return f"No tasks for {day.isoformat()}."

    layouts = layout_by_id(state.service.layout(tasks, day))
    done = state.service.completed_count(day)
    lines = [f"Tasks for {day.isoformat()} ({done}/{len(tasks)} done):"]
    for task in tasks:
        lay = layouts.get(task.id)
        column = f"{lay.column + 1}/{lay.total_columns}" if lay is not None else "-"
        lines.append(_format_task(task, column))

    now = datetime.now()
    if day == now.date():
        current = state.service.current_task(now)
        upcoming = state.service.next_task(now)
        if current is not None:
            lines.append(f"Now: {current.title} ({current.time_text})")
        if upcoming is not None:
            lines.append(f"Next: {upcoming.title} ({upcoming.time_text})")
    return "\n".join(lines)


async def cmd_refresh(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[SYNC] Reloading from the remote store...")
    tasks = await state.service.refresh()
    return f"Loaded {len(tasks)} tasks."


async def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <id> <minutes>  (negative = earlier; snapped to 15 minutes)"""
    if len(args) != 2 or _parse_minutes(args[1]) is None:
        return "Usage: /move <id> <minutes>"
    ok = await state.service.move(args[0], cast(float, _parse_minutes(args[1])))
    return _outcome(ok, f"Moved {args[0]}.")


async def cmd_resize(state: AppState, args: list[str]) -> str:
    if len(args) != 2 or _parse_minutes(args[1]) is None:
        return "Usage: /resize <id> <minutes>"
    ok = await state.service.resize(args[0], cast(float, _parse_minutes(args[1])))
    return _outcome(ok, f"Resized {args[0]}.")


async def cmd_done(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /done <id>"
    ok = await state.service.toggle_complete(args[0])
    task = state.store.get(args[0])
    status = "done" if task is not None and task.is_completed else "not done"
    return _outcome(ok, f"Marked {args[0]} as {status}.")


async def cmd_skip(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /skip <id> [reason]"
    reason = " ".join(args[1:]) or None
    ok = await state.service.skip(args[0], reason)
    return _outcome(ok, f"Skipped {args[0]}.")


async def cmd_unskip(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /unskip <id>"
    ok = await state.service.unskip(args[0])
    return _outcome(ok, f"Unskipped {args[0]}.")


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /delete <id>"
    ok = await state.service.delete(args[0])
    return _outcome(ok, f"Deleted {args[0]}.")


async def cmd_dup(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /dup <id>"
    new_id = await state.service.duplicate(args[0])
    if new_id is None:
        return _outcome(False, "")
    return f"Duplicated {args[0]} as {new_id}."


async def cmd_new(state: AppState, args: list[str]) -> str:
    """/new <HH:MM> <HH:MM> <title...>  -> personal time block today"""
    usage = "Usage: /new <HH:MM> <HH:MM> <title>"
    if len(args) < 3:
        return usage
    start = parse_time_components(args[0])
    end = parse_time_components(args[1])
    if start is None or end is None:
        return usage

    fields = NewTaskFields(
        title=" ".join(args[2:]),
        date=date.today(),
        start_hour=start[0],
        start_minute=start[1],
        end_hour=end[0],
        end_minute=end[1],
    )
    try:
        new_id = await state.service.create(fields)
    except ValueError as exc:
        return f"Cannot create: {exc}"
    if new_id is None:
        return _outcome(False, "")
    return f"Created {new_id}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show store mode, user and in-flight edits.")
registry.register("today", cmd_today, help_text="List tasks: /today [YYYY-MM-DD].", aliases=["ls"])
registry.register("refresh", cmd_refresh, help_text="Reload all sources now.")
registry.register("move", cmd_move, help_text="Shift a task: /move <id> <minutes>.")
registry.register("resize", cmd_resize, help_text="Change a task's end: /resize <id> <minutes>.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.")
registry.register("skip", cmd_skip, help_text="Skip a task: /skip <id> [reason].")
registry.register("unskip", cmd_unskip, help_text="Clear a skip: /unskip <id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("dup", cmd_dup, help_text="Duplicate a task: /dup <id>.")
registry.register("new", cmd_new, help_text="New time block today: /new <HH:MM> <HH:MM> <title>.")
