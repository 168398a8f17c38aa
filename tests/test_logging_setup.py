# tests/test_logging_setup.py

from __future__ import annotations

import logging

from taskboard.logging_setup import _ConsoleNoiseFilter


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_keeps_app_logs_and_quiets_the_rest() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("taskboard.tasks.lifecycle", logging.INFO))
    assert f.filter(_record("taskboard.cli.commands", logging.DEBUG))

    assert not f.filter(_record("taskboard.tasks.task_store", logging.INFO))
    assert f.filter(_record("taskboard.tasks.task_store", logging.WARNING))

    assert not f.filter(_record("httpx", logging.WARNING))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert f.filter(_record("openai", logging.ERROR))
