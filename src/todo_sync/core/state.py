# src/todo_sync/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..tasks.task_filters import visible_tasks
from ..tasks.task_models import FilterMode, Task
from ..tasks.task_store import TaskStore
from .ports import Authenticator, TaskRepository, Unsubscribe


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules.
    settings: object

    repository: TaskRepository
    authenticator: Authenticator
    task_store: TaskStore

    # View state for the task list.
    filter_mode: FilterMode = FilterMode.ALL
    search_query: str = ""

    # Serializes command handling against background snapshot pushes.
    lock: threading.RLock = field(default_factory=threading.RLock)

    # Teardown handles registered by the composition root.
    subscriptions: list[Unsubscribe] = field(default_factory=list)

    def visible(self) -> list[Task]:
        return visible_tasks(self.task_store.tasks, self.filter_mode, self.search_query)
