# src/taskboard/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

_STORE_LOGGER = "taskboard.tasks.task_store"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the slash-command console readable while a board is live.

    Lifecycle, board and console logs pass. The task store repeats each write the
    engine already reports, so only its WARNING+ (failed listener snapshots) reaches
    the console. Captured warnings and the summary client's openai/httpx traffic show
    only at ERROR+; the log file keeps all of it.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == _STORE_LOGGER:
            return record.levelno >= logging.WARNING
        if name.startswith("taskboard."):
            return True
        # openai, httpx, py.warnings
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Console handler on stderr (filtered, see _ConsoleNoiseFilter) plus a DEBUG file
    log at <log_dir>/taskboard.log for tracing store writes and subscriptions.

    cli.main calls this once, before the store and board are built.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "taskboard.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # a second call replaces the handlers instead of doubling every line
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # sqlite3 and openai deprecation warnings end up in the file log
    logging.captureWarnings(True)
