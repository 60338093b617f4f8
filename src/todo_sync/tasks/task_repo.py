# src/todo_sync/tasks/task_repo.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import uuid
from pathlib import Path
from typing import Any

from ..core.ports import SnapshotListener, Unsubscribe
from ..errors import RepositoryError
from .task_models import (
    DOC_DESCRIPTION,
    DOC_STATUS,
    DOC_TIMER,
    DOC_TIMER_START,
    DOC_TITLE,
    Task,
    TaskDraft,
    TaskStatus,
)

logger = logging.getLogger(__name__)

# Task field -> document key.
_FIELD_TO_DOC = {
    "title": DOC_TITLE,
    "description": DOC_DESCRIPTION,
    "status": DOC_STATUS,
    "timer_duration_seconds": DOC_TIMER,
    "timer_started_at_ms": DOC_TIMER_START,
}

# Document key -> column. A missing key is stored as NULL.
_DOC_TO_COLUMN = {
    DOC_TITLE: "title",
    DOC_DESCRIPTION: "description",
    DOC_STATUS: "status",
    DOC_TIMER: "timer",
    DOC_TIMER_START: "timer_start",
}


class SqliteTaskRepository:
    """
    SQLite task repository partitioned by owner (the identity's email).

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Live updates:
    - subscribe() registers a listener for one owner and pushes the current
      snapshot immediately
    - every successful write pushes a fresh snapshot (ordered by title) to all
      listeners of that owner

    Thread-safety:
    - each method opens its own SQLite connection
    - the listener registry is guarded by a lock; listeners run outside it
    - deliveries for one owner are serialised, so listeners never see an older
      snapshot after a newer one
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._listeners: dict[str, dict[int, SnapshotListener]] = {}
        self._delivery_locks: dict[str, threading.RLock] = {}
        self._next_token = 0
        self._lock = threading.Lock()
        self._ensure_schema()
        logger.info("SqliteTaskRepository ready db=%s total=%s", self._db_path, self.count_tasks())

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    owner TEXT NOT NULL,
                    id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    status TEXT NOT NULL DEFAULT 'open',
                    timer INTEGER,
                    timer_start INTEGER,
                    PRIMARY KEY(owner, id)
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteTaskRepository migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("status", "TEXT NOT NULL DEFAULT 'open'")
            add_col("timer", "INTEGER")
            add_col("timer_start", "INTEGER")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_title ON tasks(owner, title)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        doc = {key: row[col] for key, col in _DOC_TO_COLUMN.items() if row[col] is not None}
        return Task.from_document(str(row["id"]), doc)

    @staticmethod
    def _require_owner(owner: str) -> str:
        if not owner or not owner.strip():
            raise RepositoryError("owner is required")
        return owner

    # ---- queries ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def list_tasks(self, owner: str) -> list[Task]:
        """All tasks of `owner`, ordered by title ascending."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT * FROM tasks WHERE owner = ? ORDER BY title ASC, id ASC",
                (owner,),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    # ---- live updates ----

    def subscribe(self, owner: str, listener: SnapshotListener) -> Unsubscribe:
        self._require_owner(owner)
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners.setdefault(owner, {})[token] = listener
        logger.debug("Subscribed owner=%s token=%s", owner, token)

        def unsubscribe() -> None:
            with self._lock:
                bucket = self._listeners.get(owner)
                if bucket is None or bucket.pop(token, None) is None:
                    return
                if not bucket:
                    del self._listeners[owner]
            logger.debug("Unsubscribed owner=%s token=%s", owner, token)

        self._deliver(owner, [listener])
        return unsubscribe

    def listener_count(self, owner: str) -> int:
        with self._lock:
            return len(self._listeners.get(owner, {}))

    def _notify(self, owner: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(owner, {}).values())
        if listeners:
            self._deliver(owner, listeners)

    def _delivery_lock(self, owner: str) -> threading.RLock:
        with self._lock:
            return self._delivery_locks.setdefault(owner, threading.RLock())

    def _deliver(self, owner: str, listeners: list[SnapshotListener]) -> None:
        # Read and hand out under one lock so two writers cannot reorder snapshots.
        with self._delivery_lock(owner):
            snapshot = self.list_tasks(owner)
            for listener in listeners:
                try:
                    listener(list(snapshot))
                except Exception:
                    logger.exception("Snapshot listener failed owner=%s", owner)

    # ---- writes ----

    def create(self, owner: str, draft: TaskDraft) -> str:
        self._require_owner(owner)
        if not draft.title or not draft.title.strip():
            raise RepositoryError("title is required")
        try:
            doc = draft.to_document()
        except ValueError as e:
            raise RepositoryError(f"Invalid status: {draft.status!r}") from e

        task_id = uuid.uuid4().hex
        columns = ["owner", "id", *(_DOC_TO_COLUMN[key] for key in doc)]
        params = [owner, task_id, *doc.values()]
        placeholders = ", ".join("?" for _ in columns)

        conn = self._get_conn()
        try:
            conn.execute(f"INSERT INTO tasks({', '.join(columns)}) VALUES ({placeholders})", params)
            conn.commit()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to create task: {e}") from e
        finally:
            conn.close()

        logger.debug("Task created owner=%s id=%s keys=%s", owner, task_id, sorted(doc))
        self._notify(owner)
        return task_id

    def patch(self, owner: str, task_id: str, fields: dict[str, Any]) -> None:
        """
        Apply a partial update. Unknown field names are rejected; None clears an
        optional field.
        """
        self._require_owner(owner)
        unknown = set(fields) - set(_FIELD_TO_DOC)
        if unknown:
            raise RepositoryError(f"Unknown task fields: {', '.join(sorted(unknown))}", task_id=task_id)
        if not fields:
            return

        changes: dict[str, Any] = {}
        for name, value in fields.items():
            key = _FIELD_TO_DOC[name]
            if key == DOC_TITLE:
                if not value or not str(value).strip():
                    raise RepositoryError("title is required", task_id=task_id)
                changes[key] = str(value)
            elif key == DOC_STATUS:
                try:
                    changes[key] = TaskStatus(value).value
                except ValueError as e:
                    raise RepositoryError(f"Invalid status: {value!r}", task_id=task_id) from e
            elif value is None:
                changes[key] = None
            elif key == DOC_DESCRIPTION:
                changes[key] = str(value)
            else:
                changes[key] = int(value)

        assignments = ", ".join(f"{_DOC_TO_COLUMN[key]} = ?" for key in changes)
        params = [*changes.values(), owner, str(task_id)]
        sql = f"UPDATE tasks SET {assignments} WHERE owner = ? AND id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            updated = cur.rowcount
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to update task: {e}", task_id=task_id) from e
        finally:
            conn.close()

        if updated != 1:
            raise RepositoryError(f"No task with id {task_id}", task_id=task_id)

        logger.debug("Task patched owner=%s id=%s keys=%s", owner, task_id, sorted(changes))
        self._notify(owner)

    def delete(self, owner: str, task_id: str) -> None:
        """Delete by id. Deleting an id that does not exist succeeds without a push."""
        self._require_owner(owner)
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE owner = ? AND id = ?", (owner, str(task_id)))
            conn.commit()
            deleted = cur.rowcount
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to delete task: {e}", task_id=task_id) from e
        finally:
            conn.close()

        if deleted == 0:
            logger.debug("Delete of missing task owner=%s id=%s", owner, task_id)
            return

        logger.debug("Task deleted owner=%s id=%s", owner, task_id)
        self._notify(owner)
