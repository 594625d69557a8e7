"""Transactional entry points for the eight prompt store operations.

Each function runs in its own session against the process-wide store and
returns either the operation's JSON-ready payload or ``{"error": {...}}``.
Unexpected failures (I/O, corruption) are logged and propagate.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from prompt_store.database import session_scope
from prompt_store.errors import PromptStoreError
from prompt_store.services.prompt_service import PromptService
from prompt_store.validation import DEFAULT_LIMIT, DEFAULT_OFFSET

logger = logging.getLogger(__name__)

Result = dict[str, Any]


def _run(name: str, action: Callable[[PromptService], BaseModel]) -> Result:
    try:
        with session_scope() as session:
            payload = action(PromptService(session))
    except PromptStoreError as exc:
        logger.info("%s rejected: %s", name, exc)
        return exc.to_dict()
    except Exception:
        logger.exception("%s failed", name)
        raise
    return payload.model_dump(mode="json")


def add_prompt(title: str, content: str, tags: list[str] | None = None) -> Result:
    return _run("add_prompt", lambda svc: svc.add_prompt(title, content, tags))


def get_prompt(prompt_id: str) -> Result:
    return _run("get_prompt", lambda svc: svc.get_prompt(prompt_id))


def update_prompt(
    prompt_id: str,
    title: str,
    content: str,
    tags: list[str] | None = None,
) -> Result:
    return _run("update_prompt", lambda svc: svc.update_prompt(prompt_id, title, content, tags))


def delete_prompt(prompt_id: str) -> Result:
    return _run("delete_prompt", lambda svc: svc.delete_prompt(prompt_id))


def list_prompts(limit: int = DEFAULT_LIMIT, offset: int = DEFAULT_OFFSET) -> Result:
    return _run("list_prompts", lambda svc: svc.list_prompts(limit, offset))


def search_prompts(
    query: str,
    limit: int = DEFAULT_LIMIT,
    offset: int = DEFAULT_OFFSET,
) -> Result:
    return _run("search_prompts", lambda svc: svc.search_prompts(query, limit, offset))


def filter_by_tags(
    tags: list[str],
    limit: int = DEFAULT_LIMIT,
    offset: int = DEFAULT_OFFSET,
) -> Result:
    return _run("filter_by_tags", lambda svc: svc.filter_by_tags(tags, limit, offset))


def list_tags() -> Result:
    return _run("list_tags", lambda svc: svc.list_tags())
