"""Platform-aware default paths and settings for the prompt store."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

_DB_FILENAME = "prompts.db"
_APP_NAME = "prompt-store"

DB_ENV_VAR = "PROMPT_STORE_DB"
LOG_LEVEL_ENV_VAR = "PROMPT_STORE_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

SERVER_NAME = "prompt-store"


def default_db_path() -> Path:
    """Return the database path, honouring ``PROMPT_STORE_DB`` when set."""
    override = os.environ.get(DB_ENV_VAR)
    if override:
        return Path(override).expanduser()
    data_dir = Path(user_data_dir(_APP_NAME))
    return data_dir / _DB_FILENAME
