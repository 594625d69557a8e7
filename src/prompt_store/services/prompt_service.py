"""Core business-logic service for prompts and tags."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import ColumnElement, delete, func, insert, or_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from prompt_store.errors import PromptNotFoundError, translate_integrity_error
from prompt_store.models.prompt import Prompt, Tag, prompt_tags, utcnow
from prompt_store.schemas.prompt import (
    PromptCreated,
    PromptDeleted,
    PromptOut,
    PromptPage,
    PromptSummary,
    PromptUpdated,
    SearchPage,
    TagCount,
    TagFilterPage,
    TagList,
)
from prompt_store.validation import (
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    snippet,
    validate_content,
    validate_filter_tags,
    validate_pagination,
    validate_prompt_id,
    validate_query,
    validate_tags,
    validate_title,
)

logger = logging.getLogger(__name__)


class PromptService:
    """Service layer wrapping all prompt operations.

    The service flushes but never commits; the caller owns the transaction.
    Multi-statement writes run under a savepoint, so a rejected write leaves
    neither partial rows behind nor the session unusable.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get(self, prompt_id: str) -> Prompt:
        prompt = self._session.execute(
            select(Prompt)
            .options(selectinload(Prompt.tags))
            .where(Prompt.id == prompt_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        return prompt

    def _attach_tags(self, prompt_id: str, tag_names: list[str]) -> None:
        """Upsert each tag, then record one association per tag."""
        if not tag_names:
            return
        self._session.execute(
            sqlite_insert(Tag.__table__).on_conflict_do_nothing(index_elements=["name"]),
            [{"name": name} for name in tag_names],
        )
        self._session.execute(
            insert(prompt_tags),
            [{"prompt_id": prompt_id, "tag_name": name} for name in tag_names],
        )

    @staticmethod
    def _summary(prompt: Prompt) -> PromptSummary:
        return PromptSummary(
            id=prompt.id,
            title=prompt.title,
            snippet=snippet(prompt.content),
            tags=prompt.tag_names,
            created_at=prompt.created_at,
            updated_at=prompt.updated_at,
        )

    def _page(
        self,
        criterion: ColumnElement[bool] | None,
        limit: int,
        offset: int,
    ) -> dict[str, Any]:
        """Fetch one page, most recently updated first, plus the full match count."""
        count_stmt = select(func.count()).select_from(Prompt)
        stmt = (
            select(Prompt)
            .options(selectinload(Prompt.tags))
            .order_by(Prompt.updated_at.desc(), Prompt.id)
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        if criterion is not None:
            count_stmt = count_stmt.where(criterion)
            stmt = stmt.where(criterion)
        total = self._session.execute(count_stmt).scalar_one()
        prompts = [self._summary(p) for p in self._session.execute(stmt).scalars()]
        return {
            "prompts": prompts,
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(prompts) < total,
        }

    # ------------------------------------------------------------------
    # Prompt CRUD
    # ------------------------------------------------------------------

    def add_prompt(
        self,
        title: str,
        content: str,
        tags: list[str] | None = None,
    ) -> PromptCreated:
        """Create a prompt with its tags in one atomic step.

        Raises DuplicateTitleError when the title is taken and InvalidTagError
        naming the first malformed tag.
        """
        title = validate_title(title)
        content = validate_content(content)
        tag_names = validate_tags(tags)

        now = utcnow()
        prompt = Prompt(
            id=str(uuid.uuid4()),
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
        )
        try:
            with self._session.begin_nested():
                self._session.add(prompt)
                self._session.flush()
                self._attach_tags(prompt.id, tag_names)
        except IntegrityError as exc:
            raise translate_integrity_error(exc, title=title, tags=tag_names) from exc

        logger.info("Created prompt %s with %d tag(s)", prompt.id, len(tag_names))
        return PromptCreated(id=prompt.id, title=prompt.title, created_at=prompt.created_at)

    def get_prompt(self, prompt_id: str) -> PromptOut:
        """Fetch a prompt by id. Raises PromptNotFoundError if absent."""
        prompt = self._get(validate_prompt_id(prompt_id))
        return PromptOut(
            id=prompt.id,
            title=prompt.title,
            content=prompt.content,
            tags=prompt.tag_names,
            created_at=prompt.created_at,
            updated_at=prompt.updated_at,
        )

    def update_prompt(
        self,
        prompt_id: str,
        title: str,
        content: str,
        tags: list[str] | None = None,
    ) -> PromptUpdated:
        """Replace title, content and the whole tag set of a prompt.

        Tags missing from *tags* are dropped; this is not a merge.
        """
        prompt_id = validate_prompt_id(prompt_id)
        title = validate_title(title)
        content = validate_content(content)
        prompt = self._get(prompt_id)
        tag_names = validate_tags(tags)

        try:
            with self._session.begin_nested():
                prompt.revise(title, content)
                self._session.flush()
                self._session.execute(
                    delete(prompt_tags).where(prompt_tags.c.prompt_id == prompt_id)
                )
                self._attach_tags(prompt_id, tag_names)
        except IntegrityError as exc:
            raise translate_integrity_error(exc, title=title, tags=tag_names) from exc

        self._session.expire(prompt, ["tags"])
        logger.info("Updated prompt %s with %d tag(s)", prompt_id, len(tag_names))
        return PromptUpdated(id=prompt.id, title=prompt.title, updated_at=prompt.updated_at)

    def delete_prompt(self, prompt_id: str) -> PromptDeleted:
        """Delete a prompt; its associations go with it via ON DELETE CASCADE."""
        prompt_id = validate_prompt_id(prompt_id)
        exists = self._session.execute(
            select(Prompt.id).where(Prompt.id == prompt_id)
        ).scalar_one_or_none()
        if exists is None:
            raise PromptNotFoundError(prompt_id)
        self._session.execute(delete(Prompt).where(Prompt.id == prompt_id))
        logger.info("Deleted prompt %s", prompt_id)
        return PromptDeleted(deleted=True, id=prompt_id)

    # ------------------------------------------------------------------
    # Listing, search and filtering
    # ------------------------------------------------------------------

    def list_prompts(
        self,
        limit: int = DEFAULT_LIMIT,
        offset: int = DEFAULT_OFFSET,
    ) -> PromptPage:
        limit, offset = validate_pagination(limit, offset)
        return PromptPage(**self._page(None, limit, offset))

    def search_prompts(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        offset: int = DEFAULT_OFFSET,
    ) -> SearchPage:
        """Case-insensitive substring match on title or content. No ranking."""
        query = validate_query(query)
        limit, offset = validate_pagination(limit, offset)
        criterion = or_(
            Prompt.title.icontains(query, autoescape=True),
            Prompt.content.icontains(query, autoescape=True),
        )
        return SearchPage(query=query, **self._page(criterion, limit, offset))

    def filter_by_tags(
        self,
        tags: list[str],
        limit: int = DEFAULT_LIMIT,
        offset: int = DEFAULT_OFFSET,
    ) -> TagFilterPage:
        """Prompts carrying any of *tags*, each listed once."""
        tag_names = validate_filter_tags(tags)
        limit, offset = validate_pagination(limit, offset)
        criterion = Prompt.id.in_(
            select(prompt_tags.c.prompt_id).where(prompt_tags.c.tag_name.in_(tag_names))
        )
        return TagFilterPage(matched_tags=tag_names, **self._page(criterion, limit, offset))

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def list_tags(self) -> TagList:
        """Every known tag with its usage count, orphaned tags included."""
        rows = self._session.execute(
            select(Tag.name, func.count(prompt_tags.c.prompt_id))
            .select_from(Tag)
            .outerjoin(prompt_tags, prompt_tags.c.tag_name == Tag.name)
            .group_by(Tag.name)
            .order_by(Tag.name)
        ).all()
        tags = [TagCount(name=name, prompt_count=count) for name, count in rows]
        return TagList(tags=tags, total=len(tags))
