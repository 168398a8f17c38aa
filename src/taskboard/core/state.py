# src/taskboard/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..tasks.board import TaskBoard
from ..tasks.task_models import TaskRecord
from ..tasks.task_store import TaskStore
from .ports import LLMClient


@dataclass
class AppState:
    """
    Runtime state shared by the console surface.

    Built only by cli.bootstrap.create_initial_state().
    """

    settings: Any
    llm: LLMClient
    task_store: TaskStore
    board: TaskBoard

    lock: threading.RLock = field(default_factory=threading.RLock)
    # Last list printed by /list; commands address tasks by its 1-based numbers.
    last_listing: list[TaskRecord] = field(default_factory=list)
