# src/todo_sync/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
import shlex
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..errors import TodoSyncError
from ..tasks.task_api import edit_form_minutes, save_task_form
from ..tasks.task_models import FilterMode, Task, TaskStatus
from ..tasks.task_ticker import Ticker
from ..tasks.task_timer import countdown_label, current_time_millis

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_OPTION_NAMES = {"--title", "--desc", "--timer", "--status"}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

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

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        TodoSyncError raised by a handler becomes the reply text.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
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
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except TodoSyncError as e:
            logger.debug("Command /%s rejected: %s", name, e.message)
            return e.message

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----

def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Split `words --opt value words` into positional words and option values."""
    words: list[str] = []
    options: dict[str, list[str]] = {}
    current: str | None = None
    for arg in args:
        if arg in _OPTION_NAMES:
            current = arg[2:]
            options.setdefault(current, [])
            continue
        if current is None:
            words.append(arg)
        else:
            options[current].append(arg)
    return words, {k: " ".join(v) for k, v in options.items()}


def _resolve_task(state: AppState, ref: str) -> Task | None:
    """A 1-based index into the visible list, or a unique id prefix."""
    if ref.isdigit():
        visible = state.visible()
        index = int(ref)
        if 1 <= index <= len(visible):
            return visible[index - 1]
    matches = [t for t in state.task_store.tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _require_identity(state: AppState) -> str | None:
    if state.authenticator.identity is None:
        return "Not signed in. Use /login <email> <password> or /signup <email> <password>."
    return None


def render_task_list(state: AppState, now_ms: int) -> str:
    tasks = state.visible()
    header = f"Tasks [{state.filter_mode.value}]"
    if state.search_query.strip():
        header += f" matching {state.search_query!r}"
    if not tasks:
        return f"{header}\n  No tasks to show"

    lines = [header]
    for i, task in enumerate(tasks, start=1):
        mark = "x" if task.status is TaskStatus.COMPLETE else " "
        line = f"{i:>3}. [{mark}] {task.title}"
        label = countdown_label(task, now_ms)
        if label:
            line += f"  ({label})"
        line += f"  #{task.id[:8]}"
        lines.append(line)
        if task.description:
            lines.append(f"        {task.description}")
    return "\n".join(lines)


# ---- auth commands ----

def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_signup(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /signup <email> <password>"
    identity = state.authenticator.sign_up_with_email(args[0], args[1])
    return f"Account created. Signed in as {identity.email}."


def cmd_login(state: AppState, args: list[str]) -> str:
    """
    /login                    -> provider login
    /login <email> <password> -> email/password sign-in
    """
    if not args:
        state.authenticator.login()
        return "Signed in."
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    identity = state.authenticator.sign_in_with_email(args[0], args[1])
    return f"Signed in as {identity.name or identity.email}."


def cmd_reset(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /reset <email>"
    state.authenticator.send_password_reset(args[0])
    return "Password reset requested. Check your inbox."


def cmd_logout(state: AppState, args: list[str]) -> str:
    state.authenticator.logout()
    state.search_query = ""
    state.filter_mode = FilterMode.ALL
    return "Signed out."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    identity = state.authenticator.identity
    if identity is None:
        error = state.authenticator.error
        return f"Not signed in.{f' Last error: {error}' if error else ''}"
    name = f" ({identity.name})" if identity.name else ""
    return f"{identity.email}{name}"


# ---- task commands ----

def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <title words> [--desc text] [--timer minutes] [--status open|complete]"""
    if (msg := _require_identity(state)) is not None:
        return msg
    words, options = _split_options(args)
    title = options.get("title") or " ".join(words)
    task_id = save_task_form(
        state.task_store,
        title=title,
        description=options.get("desc") or None,
        status=options.get("status") or TaskStatus.OPEN,
        timer_minutes=options.get("timer"),
    )
    if task_id is None:
        return "Not signed in."
    return f"Added #{task_id[:8]}."


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <n|id> [--title text] [--desc text] [--timer minutes] [--status open|complete]"""
    if (msg := _require_identity(state)) is not None:
        return msg
    words, options = _split_options(args)
    if not words:
        return "Usage: /edit <n|id> [--title text] [--desc text] [--timer minutes] [--status open|complete]"
    task = _resolve_task(state, words[0])
    if task is None:
        return f"No task {words[0]!r}."

    description = options["desc"] if "desc" in options else task.description
    save_task_form(
        state.task_store,
        editing=task,
        title=options.get("title", task.title),
        description=description or None,
        status=options.get("status", task.status),
        timer_minutes=options.get("timer", edit_form_minutes(task)),
    )
    return f"Updated #{task.id[:8]}."


def cmd_toggle(state: AppState, args: list[str]) -> str:
    if (msg := _require_identity(state)) is not None:
        return msg
    if len(args) != 1:
        return "Usage: /toggle <n|id>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    new_status = state.task_store.toggle_status(task.id)
    if new_status is None:
        return f"No task {args[0]!r}."
    return f"#{task.id[:8]} -> {new_status.value}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    if (msg := _require_identity(state)) is not None:
        return msg
    if len(args) != 1:
        return "Usage: /rm <n|id>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    state.task_store.delete(task.id)
    return f"Deleted #{task.id[:8]}."


def cmd_filter(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return f"Filter is {state.filter_mode.value}. Usage: /filter all|open|complete"
    try:
        state.filter_mode = FilterMode(args[0].lower())
    except ValueError:
        return "Usage: /filter all|open|complete"
    return render_task_list(state, current_time_millis())


def cmd_search(state: AppState, args: list[str]) -> str:
    """/search <text> sets the query; /search alone clears it."""
    state.search_query = " ".join(args)
    return render_task_list(state, current_time_millis())


def cmd_list(state: AppState, args: list[str]) -> str:
    if (msg := _require_identity(state)) is not None:
        return msg
    return render_task_list(state, current_time_millis())


async def watch_task_list(
    state: AppState,
    seconds: float,
    emit: CommandEmitter | None = None,
) -> list[str]:
    """Re-render the visible list on every tick for `seconds`, then dispose the ticker."""
    frames: list[str] = []

    def on_tick(now_ms: int) -> None:
        with state.lock:
            frame = render_task_list(state, now_ms)
        frames.append(frame)
        if emit is not None:
            emit(frame)

    interval = float(getattr(state.settings, "tick_seconds", 1.0))
    ticker = Ticker(on_tick, interval_seconds=interval)
    ticker.start()
    try:
        await asyncio.sleep(seconds)
    finally:
        await ticker.stop()
    return frames


def cmd_watch(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/watch [seconds] - live countdowns, refreshed every tick (default 10s)."""
    if (msg := _require_identity(state)) is not None:
        return msg
    try:
        seconds = float(args[0]) if args else 10.0
    except ValueError:
        return "Usage: /watch [seconds]"
    frames = asyncio.run(watch_task_list(state, max(0.0, seconds), emit))
    if emit is None and frames:
        return frames[-1]
    return f"Stopped watching after {len(frames)} ticks."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("signup", cmd_signup, help_text="Create an account: /signup <email> <password>.")
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("reset", cmd_reset, help_text="Request a password reset: /reset <email>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in account.")
registry.register(
    "add", cmd_add, help_text="Add a task: /add <title> [--desc text] [--timer min] [--status open|complete]."
)
registry.register(
    "edit", cmd_edit, help_text="Edit a task: /edit <n|id> [--title ..] [--desc ..] [--timer min] [--status ..]."
)
registry.register("toggle", cmd_toggle, help_text="Flip open/complete: /toggle <n|id>.", aliases=["done"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <n|id>.", aliases=["delete"])
registry.register("filter", cmd_filter, help_text="Status filter: /filter all|open|complete.")
registry.register("search", cmd_search, help_text="Search title/description: /search <text> (empty clears).")
registry.register("list", cmd_list, help_text="Show the visible tasks.", aliases=["ls"])
registry.register("watch", cmd_watch, help_text="Live countdowns: /watch [seconds].")
