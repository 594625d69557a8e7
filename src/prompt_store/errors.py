"""Error taxonomy for prompt store operations.

Every operation either returns its success payload or fails with exactly one
:class:`PromptStoreError`. The error renders as ``{"error": {"code", "message"}}``
for callers that speak JSON (the MCP tools and the ``--json`` CLI output).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy.exc import IntegrityError


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_TITLE = "DUPLICATE_TITLE"
    INVALID_TITLE = "INVALID_TITLE"
    INVALID_TAG = "INVALID_TAG"
    INVALID_INPUT = "INVALID_INPUT"


DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.NOT_FOUND: "Prompt not found",
    ErrorCode.DUPLICATE_TITLE: "A prompt with this title already exists",
    ErrorCode.INVALID_TITLE: "Title must be 1-200 characters",
    ErrorCode.INVALID_TAG: (
        "Tag contains invalid characters. Use only letters, numbers, dash, and underscore."
    ),
    ErrorCode.INVALID_INPUT: "Invalid input parameters",
}


class PromptStoreError(ValueError):
    """Base class for the typed errors an operation can return.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable message returned to the caller.
        details: Extra context for logs; never part of the rendered error.
    """

    code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or DEFAULT_MESSAGES[self.code]
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.code.value, "message": self.message}}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class PromptNotFoundError(PromptStoreError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, prompt_id: str) -> None:
        super().__init__(details={"prompt_id": prompt_id})
        self.prompt_id = prompt_id


class DuplicateTitleError(PromptStoreError):
    code = ErrorCode.DUPLICATE_TITLE

    def __init__(self, title: str | None = None) -> None:
        super().__init__(details={"title": title} if title is not None else None)
        self.title = title


class InvalidTitleError(PromptStoreError):
    code = ErrorCode.INVALID_TITLE


class InvalidTagError(PromptStoreError):
    """Raised for a tag that fails format validation; names the raw tag."""

    code = ErrorCode.INVALID_TAG

    def __init__(self, tag: Any) -> None:
        super().__init__(
            f"Tag '{tag}' contains invalid characters. "
            "Use only letters, numbers, dash, and underscore.",
            details={"tag": str(tag)[:100]},
        )
        self.tag = tag


class InvalidInputError(PromptStoreError):
    code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str | None = None, field: str | None = None) -> None:
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


def translate_integrity_error(
    exc: IntegrityError,
    title: str | None = None,
    tags: list[str] | None = None,
) -> PromptStoreError:
    """Map a storage constraint violation onto the matching typed error.

    Raises the original exception when it is not one of the constraints the
    schema declares on behalf of the caller (e.g. a foreign key failure), since
    that means the store itself is inconsistent.
    """
    detail = str(exc.orig)
    if "prompts.title" in detail:
        return DuplicateTitleError(title)
    if "ck_prompts_title" in detail:
        return InvalidTitleError()
    if "ck_tags_name" in detail:
        return InvalidTagError(tags[0] if tags and len(tags) == 1 else ", ".join(tags or []))
    if "ck_prompts_content" in detail:
        return InvalidInputError("Content must not be empty", field="content")
    raise exc
