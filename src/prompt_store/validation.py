"""Input normalization and validation.

Pure functions, no I/O. Every operation runs its arguments through here
before touching storage, so a validation failure can never leave partial
state behind. The schema repeats the same limits as CHECK constraints.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from prompt_store.errors import (
    InvalidInputError,
    InvalidTagError,
    InvalidTitleError,
    PromptNotFoundError,
)

TITLE_MAX_LENGTH = 200
TAG_MAX_LENGTH = 50
SNIPPET_LENGTH = 200

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_OFFSET = 0

_TAG_RE = re.compile(r"^[a-z0-9_-]+$")


def _encodable(value: str) -> bool:
    """SQLite stores UTF-8; lone surrogates cannot be written."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def normalize_tag(raw: str) -> str:
    """Tags are compared and stored lowercase."""
    return raw.lower()


def is_valid_tag(name: str) -> bool:
    return 1 <= len(name) <= TAG_MAX_LENGTH and _TAG_RE.match(name) is not None


def validate_tag(raw: Any) -> str:
    """Normalize *raw* and return it, or raise :class:`InvalidTagError` naming *raw*."""
    if not isinstance(raw, str):
        raise InvalidTagError(raw)
    normalized = normalize_tag(raw)
    if not is_valid_tag(normalized):
        raise InvalidTagError(raw)
    return normalized


def validate_tags(raw_tags: Iterable[Any] | None) -> list[str]:
    """Normalize a tag collection, failing fast on the first invalid entry.

    Duplicates after normalization collapse to one entry; first-seen order is kept.
    """
    if raw_tags is None:
        return []
    if isinstance(raw_tags, str):
        raise InvalidInputError("Tags must be a list of strings", field="tags")
    normalized: list[str] = []
    for raw in raw_tags:
        tag = validate_tag(raw)
        if tag not in normalized:
            normalized.append(tag)
    return normalized


def validate_title(title: Any) -> str:
    if not isinstance(title, str) or not 1 <= len(title) <= TITLE_MAX_LENGTH:
        raise InvalidTitleError()
    if not _encodable(title):
        raise InvalidTitleError()
    return title


def validate_content(content: Any) -> str:
    if not isinstance(content, str) or not content:
        raise InvalidInputError("Content must not be empty", field="content")
    if not _encodable(content):
        raise InvalidInputError("Content must be valid UTF-8 text", field="content")
    return content


def validate_prompt_id(prompt_id: Any) -> str:
    """Ids are opaque; a string that could never have been stored is simply not found."""
    if not isinstance(prompt_id, str):
        raise InvalidInputError("Prompt id must be a string", field="id")
    if not _encodable(prompt_id):
        raise PromptNotFoundError(prompt_id)
    return prompt_id


def validate_query(query: Any) -> str:
    if not isinstance(query, str) or not _encodable(query):
        raise InvalidInputError("Query must be a valid string", field="query")
    return query


def validate_filter_tags(raw_tags: Any) -> list[str]:
    """Lowercase the requested filter tags.

    At least one non-empty tag is required. The format is not checked: a tag
    that was never stored simply matches nothing.
    """
    if not isinstance(raw_tags, (list, tuple)) or not raw_tags:
        raise InvalidInputError("At least one tag is required", field="tags")
    normalized: list[str] = []
    for raw in raw_tags:
        if not isinstance(raw, str) or not raw or not _encodable(raw):
            raise InvalidInputError("Tags must be non-empty strings", field="tags")
        tag = normalize_tag(raw)
        if tag not in normalized:
            normalized.append(tag)
    return normalized


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_pagination(
    limit: Any = DEFAULT_LIMIT,
    offset: Any = DEFAULT_OFFSET,
) -> tuple[int, int]:
    """Check ``limit`` in [1, 100] and ``offset`` >= 0. Out-of-range values are rejected, not clamped."""
    if limit is None:
        limit = DEFAULT_LIMIT
    if offset is None:
        offset = DEFAULT_OFFSET
    if not _is_int(limit) or not 1 <= limit <= MAX_LIMIT:
        raise InvalidInputError(
            f"limit must be an integer between 1 and {MAX_LIMIT}", field="limit"
        )
    if not _is_int(offset) or offset < 0:
        raise InvalidInputError("offset must be a non-negative integer", field="offset")
    return limit, offset


def snippet(content: str) -> str:
    return content[:SNIPPET_LENGTH]
