# src/todo_sync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (repository/auth/store),
- keeps the task store scoped to whoever is signed in.
"""

from __future__ import annotations

import logging

from ..auth.authenticator import LocalAuthenticator
from ..config import get_settings
from ..core.state import AppState
from ..tasks.task_repo import SqliteTaskRepository
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.users_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    repository = SqliteTaskRepository(settings.tasks_db_path)
    authenticator = LocalAuthenticator(
        settings.users_db_path,
        min_password_length=getattr(settings, "min_password_length", 5),
    )
    task_store = TaskStore(repository)

    state = AppState(
        settings=settings,
        repository=repository,
        authenticator=authenticator,
        task_store=task_store,
    )

    # Login, logout and account switches re-scope the store.
    state.subscriptions.append(authenticator.add_listener(task_store.set_identity))
    task_store.set_identity(authenticator.identity)
    return state


def shutdown_state(state: AppState) -> None:
    """Release subscriptions in reverse order of acquisition."""
    while state.subscriptions:
        unsubscribe = state.subscriptions.pop()
        try:
            unsubscribe()
        except Exception:
            logger.exception("Failed to release subscription.")
    state.task_store.close()
