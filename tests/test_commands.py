# tests/test_commands.py

from __future__ import annotations

import asyncio

from todo_sync.cli.commands import CommandRegistry, registry, watch_task_list
from todo_sync.core.state import AppState
from todo_sync.tasks.task_models import FilterMode, TaskStatus


def _signup(state: AppState, email: str = "alice@example.com") -> None:
    reply = registry.handle(state, f"/signup {email} secret1")
    assert reply is not None and "Signed in" in reply


def test_command_registry_routes_2_and_3_params(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/b y", emit=lambda _: None) == "h3"
    assert called["h2"] == 1
    assert called["h3"] == 1


def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_task_commands_require_sign_in(state: AppState) -> None:
    assert "Not signed in" in (registry.handle(state, "/add milk") or "")
    assert state.repository.list_tasks("alice@example.com") == []


def test_auth_errors_become_replies(state: AppState) -> None:
    reply = registry.handle(state, "/login alice@example.com nope")
    assert reply == "Password must be at least 5 characters long."
    assert state.authenticator.identity is None


def test_add_filter_search_toggle_flow(state: AppState) -> None:
    _signup(state)

    registry.handle(state, '/add "Buy milk" --timer 5')
    registry.handle(state, "/add Call mom --desc weekend plans")
    registry.handle(state, "/add Pay rent")

    titles = [t.title for t in state.task_store.tasks]
    assert titles == ["Buy milk", "Call mom", "Pay rent"]
    milk = state.task_store.tasks[0]
    assert milk.timer_duration_seconds == 300
    assert milk.timer_started_at_ms is not None

    reply = registry.handle(state, "/toggle 2")
    assert reply is not None and "complete" in reply

    listing = registry.handle(state, "/filter open") or ""
    assert "Call mom" not in listing
    assert "Buy milk" in listing
    assert state.filter_mode is FilterMode.OPEN

    listing = registry.handle(state, "/search mom") or ""
    assert "No tasks to show" in listing

    registry.handle(state, "/filter all")
    listing = registry.handle(state, "/search WEEKEND") or ""
    assert "Call mom" in listing
    assert "[x]" in listing


def test_blank_title_reply(state: AppState) -> None:
    _signup(state)
    assert registry.handle(state, "/add --desc only") == "Title is required."
    assert state.task_store.tasks == []


def test_edit_and_remove(state: AppState) -> None:
    _signup(state)
    registry.handle(state, "/add Draft --timer 2")
    (task,) = state.task_store.tasks

    registry.handle(state, f"/edit {task.id[:8]} --title Final --status complete")
    (edited,) = state.task_store.tasks
    assert edited.title == "Final"
    assert edited.status is TaskStatus.COMPLETE
    assert edited.timer_duration_seconds == 120
    assert edited.timer_started_at_ms == task.timer_started_at_ms

    assert "Deleted" in (registry.handle(state, "/rm 1") or "")
    assert state.task_store.tasks == []
    assert "No task" in (registry.handle(state, "/rm 1") or "")


def test_switching_accounts_rescopes_the_list(state: AppState) -> None:
    _signup(state, "alice@example.com")
    registry.handle(state, "/add Alice only")
    registry.handle(state, "/logout")
    assert state.task_store.tasks == []

    _signup(state, "bob@example.com")
    assert state.task_store.tasks == []
    registry.handle(state, "/add Bob only")
    assert [t.title for t in state.task_store.tasks] == ["Bob only"]

    registry.handle(state, "/logout")
    registry.handle(state, "/login alice@example.com secret1")
    assert [t.title for t in state.task_store.tasks] == ["Alice only"]


def test_watch_renders_every_tick(state: AppState) -> None:
    _signup(state)
    registry.handle(state, "/add Tea --timer 3")

    frames = asyncio.run(watch_task_list(state, 0.05))

    assert frames
    assert all("Tea" in f for f in frames)
    assert "(03:00)" in frames[0] or "(02:59)" in frames[0]
