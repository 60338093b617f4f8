# src/todo_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store and the console depend on Protocols instead of concrete
implementations. This keeps the repository/authenticator swappable (a hosted
document store, an OAuth provider) and makes testing easier.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..tasks.task_models import Task, TaskDraft

SnapshotListener = Callable[[list[Task]], None]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True, slots=True)
class Identity:
    """
    The authenticated principal.

    `email` is the scoping key that selects the task partition. It is a
    human-editable field and its uniqueness is up to the identity provider.
    """

    email: str
    name: str | None = None
    picture: str | None = None


IdentityListener = Callable[[Identity | None], None]


class TaskRepository(Protocol):
    """
    Per-owner task collection with push notifications.

    `subscribe` delivers a full snapshot ordered by title ascending on every
    change (and once right after subscribing). Writes raise RepositoryError on
    rejection; success does not imply the snapshot has already been pushed.
    """

    def subscribe(self, owner: str, listener: SnapshotListener) -> Unsubscribe: ...

    def create(self, owner: str, draft: TaskDraft) -> str: ...

    def patch(self, owner: str, task_id: str, fields: dict[str, Any]) -> None: ...

    def delete(self, owner: str, task_id: str) -> None: ...


class Authenticator(Protocol):
    """
    Identity provider as seen by the core.

    Every operation either succeeds or raises AuthError after storing a
    human-readable message in `error`.
    """

    @property
    def identity(self) -> Identity | None: ...

    @property
    def error(self) -> str | None: ...

    def login(self) -> None: ...

    def logout(self) -> None: ...

    def sign_in_with_email(self, email: str, password: str) -> Identity: ...

    def sign_up_with_email(self, email: str, password: str) -> Identity: ...

    def send_password_reset(self, email: str) -> None: ...

    def add_listener(self, listener: IdentityListener) -> Unsubscribe: ...
