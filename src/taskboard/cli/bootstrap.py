# src/taskboard/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, status catalog, lifecycle engine, board and LLM client into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import LLMClient
from ..core.state import AppState
from ..llm.client import OpenAICompatibleLLMClient
from ..llm.offline import OfflineLLMClient
from ..tasks.board import TaskBoard
from ..tasks.dedup import build_denylist
from ..tasks.lifecycle import LifecycleEngine
from ..tasks.status_catalog import StatusCatalog
from ..tasks.task_api import ensure_default_status_options
from ..tasks.task_models import OwnerFilter
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, seed_statuses: bool = True) -> AppState:
    """
    Create AppState from the provided settings.

    Settings stay injectable so tests never read the environment.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    llm_client: LLMClient
    if getattr(settings, "llm_api_key", None):
        llm_client = OpenAICompatibleLLMClient(settings)
    else:
        logger.info("No LLM API key configured; summaries use the offline client.")
        llm_client = OfflineLLMClient()

    store = TaskStore(settings.tasks_db_path)
    if seed_statuses:
        ensure_default_status_options(store)

    owner = OwnerFilter(uid=settings.owner_uid, email=settings.owner_email)
    if owner.is_empty:
        logger.warning("No owner identity configured (TASKBOARD_OWNER_EMAIL / _UID); lists stay empty.")

    engine = LifecycleEngine(
        store,
        actor=settings.owner_name,
        comment_max_chars=settings.completion_comment_max_chars,
        legacy_due_days=settings.legacy_subtask_due_days,
    )
    catalog = StatusCatalog(theme_default_color=settings.default_status_color)
    board = TaskBoard(
        store,
        engine,
        catalog,
        owner,
        denylist=build_denylist(settings.junk_titles),
    )

    return AppState(settings=settings, llm=llm_client, task_store=store, board=board)
