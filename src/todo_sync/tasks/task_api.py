# src/todo_sync/tasks/task_api.py

from __future__ import annotations

import logging

from ..errors import ValidationError
from .task_models import Task, TaskDraft, TaskStatus
from .task_store import TaskStore
from .task_timer import minutes_to_seconds

logger = logging.getLogger(__name__)


def save_task_form(
    store: TaskStore,
    *,
    title: str,
    description: str | None = None,
    status: TaskStatus | str = TaskStatus.OPEN,
    timer_minutes: str | int | None = None,
    editing: Task | None = None,
) -> str | None:
    """
    Convenience helper behind the add/edit form.

    - empty title: raises ValidationError, nothing is written
    - new task: timer start is stamped by the store when a duration is given
    - edit: sends title/description/status/duration; the start instant is kept

    Returns the new id for an add, the edited id for an edit, or None when the
    store has no identity.
    """
    if not title or not title.strip():
        raise ValidationError("Title is required.")

    try:
        status = TaskStatus(status)
    except ValueError:
        raise ValidationError("Status must be 'open' or 'complete'.") from None
    timer_seconds = minutes_to_seconds(timer_minutes)

    if editing is not None:
        if store.identity is None:
            return None
        store.update(
            editing.id,
            title=title,
            description=description,
            status=status,
            timer_duration_seconds=timer_seconds,
        )
        logger.info("Task edited id=%s", editing.id)
        return editing.id

    task_id = store.add(
        TaskDraft(
            title=title,
            description=description,
            status=status,
            timer_duration_seconds=timer_seconds,
        )
    )
    if task_id is not None:
        logger.info("Task added id=%s timer=%s", task_id, timer_seconds)
    return task_id


def edit_form_minutes(task: Task) -> str:
    """Minutes shown in the edit form for an existing task ('' when no timer)."""
    if not task.timer_duration_seconds:
        return ""
    return str(task.timer_duration_seconds // 60)
