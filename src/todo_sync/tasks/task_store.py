# src/todo_sync/tasks/task_store.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from ..core.ports import Identity, SnapshotListener, TaskRepository, Unsubscribe
from ..errors import ValidationError
from .task_models import Task, TaskDraft, TaskStatus
from .task_timer import current_time_millis

logger = logging.getLogger(__name__)


class TaskStore:
    """
    Read-through cache of the signed-in user's tasks.

    The snapshot is only ever replaced wholesale by a repository push. Mutations
    are forwarded to the repository and never touch the local snapshot; the
    next push is the sole source of truth for what the caller sees.

    Lifecycle (owned by the composition root):
      store = TaskStore(repo)
      store.subscribe(identity)   # or set_identity(...) on login/logout
      ...
      store.close()
    """

    def __init__(
        self,
        repository: TaskRepository,
        *,
        clock: Callable[[], int] = current_time_millis,
    ) -> None:
        self._repo = repository
        self._clock = clock
        self._lock = threading.Lock()
        self._identity: Identity | None = None
        self._tasks: list[Task] = []
        self._unsubscribe: Unsubscribe | None = None
        self._generation = 0
        self._listeners: dict[int, SnapshotListener] = {}
        self._next_token = 0

    # ---- state ----

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def tasks(self) -> list[Task]:
        """Latest pushed snapshot (a copy; ordered by title)."""
        with self._lock:
            return list(self._tasks)

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            return next((t for t in self._tasks if t.id == task_id), None)

    # ---- subscription ----

    def subscribe(self, identity: Identity | None) -> None:
        """
        Scope the store to `identity`.

        Any previous subscription is torn down first. With no identity the
        snapshot becomes empty and nothing is subscribed.
        """
        self._teardown()

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._identity = identity
            self._tasks = []

        self._fire([])

        if identity is None or not identity.email:
            logger.info("TaskStore cleared (no identity)")
            return

        def on_snapshot(snapshot: list[Task]) -> None:
            self._apply_snapshot(generation, snapshot)

        unsubscribe = self._repo.subscribe(identity.email, on_snapshot)
        with self._lock:
            stale = generation != self._generation
            if not stale:
                self._unsubscribe = unsubscribe
        if stale:
            # Identity changed while the repository was delivering the first push.
            unsubscribe()
            return
        logger.info("TaskStore subscribed owner=%s", identity.email)

    # Identity changes (login/logout/switch account) all funnel through subscribe().
    set_identity = subscribe

    def close(self) -> None:
        self._teardown()
        with self._lock:
            self._generation += 1
            self._identity = None
            self._tasks = []
        logger.debug("TaskStore closed")

    def _teardown(self) -> None:
        with self._lock:
            unsubscribe = self._unsubscribe
            self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()

    def _apply_snapshot(self, generation: int, snapshot: list[Task]) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropped snapshot from superseded subscription")
                return
            self._tasks = list(snapshot)
            tasks = list(self._tasks)
        logger.debug("Snapshot applied count=%s", len(tasks))
        self._fire(tasks)

    # ---- listeners ----

    def add_listener(self, listener: SnapshotListener) -> Unsubscribe:
        """Call `listener(snapshot)` after every replacement. Returns an unsubscribe handle."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def _fire(self, tasks: list[Task]) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(list(tasks))
            except Exception:
                logger.exception("TaskStore listener failed")

    # ---- mutations ----

    def _owner(self) -> str | None:
        identity = self._identity
        if identity is None or not identity.email:
            return None
        return identity.email

    def add(self, draft: TaskDraft) -> str | None:
        """
        Ask the repository to create `draft`.

        Returns the new id, or None when nobody is signed in. The task shows up
        in `tasks` only once the repository pushes the next snapshot.
        """
        owner = self._owner()
        if owner is None:
            logger.debug("add ignored: no identity")
            return None
        if not draft.title or not draft.title.strip():
            raise ValidationError("Title is required.")

        if draft.timer_duration_seconds and draft.timer_started_at_ms is None:
            draft = replace(draft, timer_started_at_ms=self._clock())
        elif not draft.timer_duration_seconds:
            draft = replace(draft, timer_duration_seconds=None, timer_started_at_ms=None)

        return self._repo.create(owner, draft)

    def update(self, task_id: str, **fields: Any) -> None:
        """
        Forward a partial patch. The timer start instant is left as is.

        An id missing from the latest snapshot is ignored.
        """
        owner = self._owner()
        if owner is None:
            logger.debug("update ignored: no identity id=%s", task_id)
            return
        if self.get(task_id) is None:
            logger.debug("update ignored: unknown id=%s", task_id)
            return
        if "title" in fields and (not fields["title"] or not str(fields["title"]).strip()):
            raise ValidationError("Title is required.")
        if not fields:
            return
        self._repo.patch(owner, task_id, fields)

    def delete(self, task_id: str) -> None:
        owner = self._owner()
        if owner is None:
            logger.debug("delete ignored: no identity id=%s", task_id)
            return
        if self.get(task_id) is None:
            logger.debug("delete ignored: unknown id=%s", task_id)
            return
        self._repo.delete(owner, task_id)

    def toggle_status(self, task_id: str) -> TaskStatus | None:
        """
        Flip open <-> complete based on the latest snapshot.

        Returns the requested status, or None if the id is not in the snapshot.
        """
        task = self.get(task_id)
        if task is None:
            logger.debug("toggle ignored: unknown id=%s", task_id)
            return None
        new_status = task.status.flipped()
        self.update(task_id, status=new_status)
        return new_status
