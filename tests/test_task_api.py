# tests/test_task_api.py

from __future__ import annotations

import pytest

from todo_sync.errors import ValidationError
from todo_sync.tasks.task_api import edit_form_minutes, save_task_form
from todo_sync.tasks.task_models import TaskStatus
from todo_sync.tasks.task_store import TaskStore

from .conftest import ALICE, make_task
from .fakes import FakeTaskRepository

NOW = 1_700_000_000_000


@pytest.fixture()
def store(repo: FakeTaskRepository) -> TaskStore:
    s = TaskStore(repo, clock=lambda: NOW)
    s.subscribe(ALICE)
    return s


def test_add_converts_minutes_and_stamps_start(store: TaskStore, repo: FakeTaskRepository) -> None:
    task_id = save_task_form(store, title="Read", timer_minutes="15")

    (task,) = store.tasks
    assert task.id == task_id
    assert task.timer_duration_seconds == 900
    assert task.timer_started_at_ms == NOW
    assert task.status is TaskStatus.OPEN


def test_blank_title_is_rejected_before_the_repository(store: TaskStore, repo: FakeTaskRepository) -> None:
    with pytest.raises(ValidationError):
        save_task_form(store, title="  ", timer_minutes="5")
    assert repo.writes("create") == []


def test_bad_status_is_a_validation_error(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        save_task_form(store, title="x", status="done")


def test_edit_keeps_timer_start_instant(store: TaskStore, repo: FakeTaskRepository) -> None:
    repo.seed(ALICE.email, make_task("a1", "Old", timer=60, started=NOW - 5000))
    repo.push(ALICE.email)
    (task,) = store.tasks

    save_task_form(store, editing=task, title="New", timer_minutes="10", status="complete")

    (edited,) = store.tasks
    assert edited.title == "New"
    assert edited.timer_duration_seconds == 600
    assert edited.timer_started_at_ms == NOW - 5000
    assert edited.status is TaskStatus.COMPLETE
    assert "timer_started_at_ms" not in repo.writes("patch")[0].payload


def test_edit_form_minutes() -> None:
    assert edit_form_minutes(make_task("a", "t", timer=900, started=1)) == "15"
    assert edit_form_minutes(make_task("a", "t")) == ""
