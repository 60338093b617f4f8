# tests/test_logging_setup.py

from __future__ import annotations

import logging

from todo_sync.logging_setup import _ConsoleNoiseFilter


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_keeps_app_logs() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("todo_sync.tasks.task_store", logging.DEBUG))
    assert f.filter(_record("todo_sync.cli.console", logging.INFO))


def test_console_filter_quiets_the_ticker() -> None:
    f = _ConsoleNoiseFilter()
    assert not f.filter(_record("todo_sync.tasks.task_ticker", logging.INFO))
    assert f.filter(_record("todo_sync.tasks.task_ticker", logging.WARNING))


def test_console_filter_hides_foreign_noise_below_error() -> None:
    f = _ConsoleNoiseFilter()
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("asyncio", logging.INFO))
    assert f.filter(_record("asyncio", logging.ERROR))
