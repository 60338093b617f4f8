# src/todo_sync/tasks/task_timer.py

"""
Countdown math for per-task timers.

A timer is a configured duration plus the instant it was started. Remaining
time is always recomputed from those two values and a sampled "now"; nothing
here mutates a task or notifies the repository when a timer runs out.
"""

from __future__ import annotations

import re
import time

from .task_models import Task, TaskStatus

TIMES_UP_LABEL = "Time's up!"

_NON_DIGITS = re.compile(r"[^0-9]")


def current_time_millis() -> int:
    return int(time.time() * 1000)


def remaining_seconds(task: Task, now_ms: int) -> int | None:
    """
    Seconds left on the task's timer, floored at zero.

    Returns None when the task has no duration or no start instant.
    """
    if not task.has_timer:
        return None
    elapsed = (int(now_ms) - int(task.timer_started_at_ms)) // 1000
    left = int(task.timer_duration_seconds) - elapsed
    return left if left > 0 else 0


def is_expired(task: Task, now_ms: int) -> bool:
    return remaining_seconds(task, now_ms) == 0


def format_countdown(seconds: int) -> str:
    # Minutes keep counting past 59; there is no hour field.
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def countdown_label(task: Task, now_ms: int) -> str | None:
    """Text shown next to a task: None (no timer or completed), mm:ss, or the expiry label."""
    if task.status is TaskStatus.COMPLETE:
        return None
    left = remaining_seconds(task, now_ms)
    if left is None:
        return None
    if left == 0:
        return TIMES_UP_LABEL
    return format_countdown(left)


def minutes_to_seconds(raw: str | int | None) -> int | None:
    """
    Convert a "timer (min)" input into a duration in seconds.

    Non-digit characters are stripped. Blank or zero means "no timer".
    """
    if raw is None:
        return None
    if isinstance(raw, int):
        minutes = raw
    else:
        digits = _NON_DIGITS.sub("", raw)
        if not digits:
            return None
        minutes = int(digits)
    if minutes <= 0:
        return None
    return minutes * 60
