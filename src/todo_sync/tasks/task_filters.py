# src/todo_sync/tasks/task_filters.py

from __future__ import annotations

from collections.abc import Iterable

from .task_models import FilterMode, Task, TaskStatus


def apply_status_filter(tasks: Iterable[Task], mode: FilterMode | str) -> list[Task]:
    """
    Keep tasks whose status matches `mode`.

    FilterMode.ALL returns every task in input order.
    """
    mode = FilterMode(mode)
    if mode is FilterMode.ALL:
        return list(tasks)
    wanted = TaskStatus(mode.value)
    return [t for t in tasks if t.status == wanted]


def _matches(task: Task, needle: str) -> bool:
    if needle in task.title.lower():
        return True
    return bool(task.description) and needle in task.description.lower()


def apply_search(tasks: Iterable[Task], query: str | None) -> list[Task]:
    """
    Case-insensitive substring search over title and description.

    A blank query returns every task. The query itself is not trimmed for matching,
    only for the blank check.
    """
    items = list(tasks)
    if not query or not query.strip():
        return items
    needle = query.lower()
    return [t for t in items if _matches(t, needle)]


def visible_tasks(tasks: Iterable[Task], mode: FilterMode | str, query: str | None) -> list[Task]:
    # Search narrows the already filtered set, never the other way around.
    return apply_search(apply_status_filter(tasks, mode), query)
