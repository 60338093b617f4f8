# src/todo_sync/errors.py

"""
Exception hierarchy.

Nothing here is fatal to the process: callers either report the message to the
user or treat the failure as a no-op.
"""

from __future__ import annotations


class TodoSyncError(Exception):
    """Base class for all todo-sync errors. `message` is safe to show to a user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TodoSyncError):
    """Local input rejected before anything reaches the repository."""


class AuthError(TodoSyncError):
    """Sign-in / sign-up / password reset failed."""


class RepositoryError(TodoSyncError):
    """A create/patch/delete was rejected by the task repository."""

    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id
