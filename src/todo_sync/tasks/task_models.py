# src/todo_sync/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """Task completion status. Only these two values are ever persisted."""

    OPEN = "open"
    COMPLETE = "complete"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.OPEN
        try:
            return cls(raw)
        except ValueError:
            return cls.OPEN

    def flipped(self) -> TaskStatus:
        return TaskStatus.COMPLETE if self is TaskStatus.OPEN else TaskStatus.OPEN


class FilterMode(StrEnum):
    ALL = "all"
    OPEN = "open"
    COMPLETE = "complete"


# Document keys as stored by the repository. Optional fields are omitted, never null.
DOC_TITLE = "title"
DOC_DESCRIPTION = "description"
DOC_STATUS = "status"
DOC_TIMER = "timer"
DOC_TIMER_START = "timerStart"


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """A task that has not been persisted yet (no id)."""

    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.OPEN
    timer_duration_seconds: int | None = None
    timer_started_at_ms: int | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            DOC_TITLE: self.title,
            DOC_STATUS: TaskStatus(self.status).value,
        }
        if self.description is not None:
            doc[DOC_DESCRIPTION] = self.description
        if self.timer_duration_seconds is not None:
            doc[DOC_TIMER] = int(self.timer_duration_seconds)
        if self.timer_started_at_ms is not None:
            doc[DOC_TIMER_START] = int(self.timer_started_at_ms)
        return doc


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.OPEN
    timer_duration_seconds: int | None = None
    timer_started_at_ms: int | None = None

    @property
    def has_timer(self) -> bool:
        # Zero counts as unset for both fields.
        return bool(self.timer_duration_seconds) and bool(self.timer_started_at_ms)

    def draft(self) -> TaskDraft:
        return TaskDraft(
            title=self.title,
            description=self.description,
            status=self.status,
            timer_duration_seconds=self.timer_duration_seconds,
            timer_started_at_ms=self.timer_started_at_ms,
        )

    def to_document(self) -> dict[str, Any]:
        return self.draft().to_document()

    @classmethod
    def from_document(cls, task_id: str, doc: dict[str, Any]) -> Task:
        timer = doc.get(DOC_TIMER)
        timer_start = doc.get(DOC_TIMER_START)
        description = doc.get(DOC_DESCRIPTION)
        return cls(
            id=str(task_id),
            title=str(doc.get(DOC_TITLE) or ""),
            description=str(description) if description is not None else None,
            status=TaskStatus.from_db(doc.get(DOC_STATUS)),
            timer_duration_seconds=int(timer) if timer is not None else None,
            timer_started_at_ms=int(timer_start) if timer_start is not None else None,
        )
