# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening the code.
"""

ENV_VARS = {
    # App / logging
    "TASKBOARD_APP_NAME": "App display name (default: taskboard).",
    "TASKBOARD_LOG_LEVEL": "Console logging level (default: INFO).",
    # Session identity (scopes every query; empty => lists stay empty)
    "TASKBOARD_OWNER_UID": "User id that owns / created tasks.",
    "TASKBOARD_OWNER_EMAIL": "User email; matched case-insensitively against assignee/creator.",
    "TASKBOARD_OWNER_NAME": "Name written into the activity log (default: owner email).",
    # Paths (gitignored)
    "TASKBOARD_DATA_DIR": "Local data directory (default: .local/taskboard).",
    "TASKBOARD_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Task rules
    "TASKBOARD_JUNK_TITLES": "Comma separated junk/test titles hidden and swept (default: M,Mmm,F,Cccccc,Ccccccc).",
    "TASKBOARD_COMPLETION_COMMENT_MAX_CHARS": "Max completion comment length (default: 300).",
    "TASKBOARD_LEGACY_SUBTASK_DUE_DAYS": "Default due offset for untagged legacy subtasks (default: 7).",
    "TASKBOARD_DEFAULT_STATUS_COLOR": "Color for labels without a configured color (default: #8E8E93).",
    # LLM (task summaries; optional)
    "TASKBOARD_LLM_API_KEY": "OpenAI-compatible API key (OPENROUTER_API_KEY also accepted).",
    "TASKBOARD_LLM_BASE_URL": "API base URL (default: https://openrouter.ai/api/v1).",
    "TASKBOARD_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "TASKBOARD_LLM_CONNECT_TIMEOUT_SECONDS": "Connect timeout (default: 5).",
    "TASKBOARD_LLM_READ_TIMEOUT_SECONDS": "Read timeout, never below the first-token timeout (default: 25).",
    "TASKBOARD_LLM_FIRST_TOKEN_TIMEOUT_SECONDS": "Give up on a model without a first token (default: 20).",
    "TASKBOARD_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "TASKBOARD_APP_TITLE": "Optional OpenRouter metadata header title.",
}
