# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskboard.core.state import AppState
from taskboard.tasks.board import TaskBoard
from taskboard.tasks.lifecycle import LifecycleEngine
from taskboard.tasks.status_catalog import StatusCatalog
from taskboard.tasks.task_models import OwnerFilter
from taskboard.tasks.task_store import TaskStore

from .fakes import OWNER_EMAIL, OWNER_UID, FakeLLMClient

TODAY = date(2024, 5, 6)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskboard-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        owner_uid=OWNER_UID,
        owner_email=OWNER_EMAIL,
        owner_name="Me",
        junk_titles=["M", "Mmm", "F", "Cccccc", "Ccccccc"],
        completion_comment_max_chars=300,
        legacy_subtask_due_days=7,
        default_status_color="#8E8E93",
        llm_api_key=None,
        llm_base_url="http://localhost",
        llm_models=[],
        extra_headers={},
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    """Real SQLite store: its listener semantics are part of what we test."""
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def owner() -> OwnerFilter:
    return OwnerFilter(uid=OWNER_UID, email=OWNER_EMAIL)


@pytest.fixture()
def engine(store: TaskStore) -> LifecycleEngine:
    return LifecycleEngine(store, actor="Me", clock=lambda: TODAY)


@pytest.fixture()
def board(store: TaskStore, engine: LifecycleEngine, owner: OwnerFilter) -> Iterator[TaskBoard]:
    b = TaskBoard(store, engine, StatusCatalog(), owner, clock=lambda: TODAY)
    yield b
    b.stop()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, board: TaskBoard) -> AppState:
    return AppState(settings=settings, llm=FakeLLMClient("All good."), task_store=store, board=board)
