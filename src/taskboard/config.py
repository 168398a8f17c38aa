# src/taskboard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Settings are passed explicitly into the composition root; nothing below it reads env.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "TASKBOARD"

DEFAULT_JUNK_TITLES = ["M", "Mmm", "F", "Cccccc", "Ccccccc"]


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    """Comma separated list; blanks inside an item are kept (titles may contain spaces)."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.split(",") if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Session identity (scopes every query) ----
    owner_uid: Optional[str]
    owner_email: Optional[str]
    owner_name: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Task rules ----
    junk_titles: List[str]
    completion_comment_max_chars: int
    legacy_subtask_due_days: int
    default_status_color: str

    # ---- LLM (task summaries) ----
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]
    llm_connect_timeout_s: float
    llm_read_timeout_s: float
    llm_first_token_timeout_s: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="taskboard") or "taskboard"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        owner_uid = (_env(_k("OWNER_UID"), "").strip()) or None
        owner_email = (_env(_k("OWNER_EMAIL"), "").strip()) or None
        owner_name = _env(_k("OWNER_NAME"), "").strip() or (owner_email or "User")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskboard"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        junk_titles = _env_list(_k("JUNK_TITLES"), DEFAULT_JUNK_TITLES)
        completion_comment_max_chars = _env_int(_k("COMPLETION_COMMENT_MAX_CHARS"), 300)
        legacy_subtask_due_days = _env_int(_k("LEGACY_SUBTASK_DUE_DAYS"), 7)
        default_status_color = _env(_k("DEFAULT_STATUS_COLOR"), "#8E8E93")

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENROUTER_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = [
            m
            for m in _env(
                _k("LLM_MODELS"),
                "google/gemini-flash-1.5,google/gemini-pro-1.5",
            ).replace(",", " ").split()
            if m.strip()
        ]

        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        llm_connect_timeout_s = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_first_token_timeout_s = _env_float(_k("LLM_FIRST_TOKEN_TIMEOUT_SECONDS"), 20.0)
        llm_read_timeout_s = max(_env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 25.0), llm_first_token_timeout_s)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            owner_uid=owner_uid,
            owner_email=owner_email,
            owner_name=owner_name,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            junk_titles=junk_titles,
            completion_comment_max_chars=completion_comment_max_chars,
            legacy_subtask_due_days=legacy_subtask_due_days,
            default_status_color=default_status_color,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            llm_connect_timeout_s=llm_connect_timeout_s,
            llm_read_timeout_s=llm_read_timeout_s,
            llm_first_token_timeout_s=llm_first_token_timeout_s,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
