# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_sync.cli.bootstrap import create_initial_state, shutdown_state
from todo_sync.core.ports import Identity
from todo_sync.core.state import AppState
from todo_sync.tasks.task_models import Task, TaskStatus

from .fakes import FakeTaskRepository

ALICE = Identity(email="alice@example.com", name="Alice")
BOB = Identity(email="bob@example.com", name="Bob")


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-sync-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        users_db_path=tmp_path / "users.sqlite3",
        tick_seconds=0.01,
        min_password_length=5,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> Iterator[AppState]:
    """
    AppState wired with the real SQLite repository and authenticator.

    Their correctness is part of what we want to test.
    """
    app_state = create_initial_state(settings=settings)
    yield app_state
    shutdown_state(app_state)


@pytest.fixture()
def repo() -> FakeTaskRepository:
    return FakeTaskRepository()


def make_task(
    task_id: str,
    title: str,
    *,
    description: str | None = None,
    status: TaskStatus = TaskStatus.OPEN,
    timer: int | None = None,
    started: int | None = None,
) -> Task:
    return Task(
        id=task_id,
        title=title,
        description=description,
        status=status,
        timer_duration_seconds=timer,
        timer_started_at_ms=started,
    )
