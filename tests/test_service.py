"""Tests for the PromptService."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from prompt_store.errors import (
    DuplicateTitleError,
    InvalidInputError,
    InvalidTagError,
    InvalidTitleError,
    PromptNotFoundError,
)
from prompt_store.models import Prompt, Tag, prompt_tags
from prompt_store.services.prompt_service import PromptService


def _count(session: Session, entity) -> int:
    return session.execute(select(func.count()).select_from(entity)).scalar_one()


class TestAddPrompt:
    def test_add_prompt(self, service: PromptService) -> None:
        created = service.add_prompt("T1", "C1", ["Coding", "Review"])
        assert created.title == "T1"
        assert created.id
        prompt = service.get_prompt(created.id)
        assert prompt.content == "C1"
        assert prompt.tags == ["coding", "review"]
        assert prompt.created_at == prompt.updated_at

    def test_add_without_tags(self, service: PromptService) -> None:
        created = service.add_prompt("bare", "content")
        assert service.get_prompt(created.id).tags == []

    def test_ids_are_unique(self, service: PromptService) -> None:
        ids = {service.add_prompt(f"p{i}", "c").id for i in range(5)}
        assert len(ids) == 5

    def test_duplicate_title_raises(self, service: PromptService, session: Session) -> None:
        service.add_prompt("dup", "first")
        with pytest.raises(DuplicateTitleError):
            service.add_prompt("dup", "second", ["other"])
        assert _count(session, Prompt) == 1
        assert _count(session, prompt_tags) == 0

    def test_title_is_case_sensitive(self, service: PromptService) -> None:
        service.add_prompt("Title", "a")
        service.add_prompt("title", "b")
        assert service.list_prompts().total == 2

    def test_invalid_tag_persists_nothing(
        self, service: PromptService, session: Session
    ) -> None:
        with pytest.raises(InvalidTagError, match="bad tag!"):
            service.add_prompt("T", "content", ["good", "bad tag!"])
        assert _count(session, Prompt) == 0
        assert _count(session, Tag) == 0

    def test_invalid_title(self, service: PromptService) -> None:
        with pytest.raises(InvalidTitleError):
            service.add_prompt("x" * 201, "content")

    def test_empty_content(self, service: PromptService) -> None:
        with pytest.raises(InvalidInputError):
            service.add_prompt("t", "")

    def test_duplicate_tags_in_request(self, service: PromptService) -> None:
        created = service.add_prompt("t", "c", ["AI", "ai", "Ai"])
        assert service.get_prompt(created.id).tags == ["ai"]

    def test_existing_tag_reused(self, service: PromptService, session: Session) -> None:
        service.add_prompt("a", "c", ["shared"])
        service.add_prompt("b", "c", ["shared"])
        assert _count(session, Tag) == 1


class TestGetPrompt:
    def test_get_nonexistent_raises(self, service: PromptService) -> None:
        with pytest.raises(PromptNotFoundError):
            service.get_prompt("00000000-0000-0000-0000-000000000000")

    def test_malformed_id_is_not_found(self, service: PromptService) -> None:
        with pytest.raises(PromptNotFoundError):
            service.get_prompt("not-a-uuid")

    def test_full_record(self, service: PromptService) -> None:
        created = service.add_prompt("t", "body", ["b", "a"])
        prompt = service.get_prompt(created.id)
        assert prompt.id == created.id
        assert prompt.title == "t"
        assert prompt.content == "body"
        assert prompt.tags == ["a", "b"]
        assert prompt.created_at == created.created_at


class TestUpdatePrompt:
    def test_replaces_fields_and_tags(self, service: PromptService) -> None:
        created = service.add_prompt("old", "old content", ["keep", "drop"])
        updated = service.update_prompt(created.id, "new", "new content", ["keep", "Fresh"])
        assert updated.title == "new"
        prompt = service.get_prompt(created.id)
        assert prompt.title == "new"
        assert prompt.content == "new content"
        assert prompt.tags == ["fresh", "keep"]

    def test_unmentioned_tags_dropped(self, service: PromptService) -> None:
        created = service.add_prompt("t", "c", ["a", "b"])
        service.update_prompt(created.id, "t", "c", [])
        assert service.get_prompt(created.id).tags == []

    def test_identical_update_advances_updated_at(self, service: PromptService) -> None:
        created = service.add_prompt("t", "c", ["a"])
        before = service.get_prompt(created.id)
        updated = service.update_prompt(created.id, "t", "c", ["a"])
        after = service.get_prompt(created.id)
        assert updated.updated_at > before.updated_at
        assert after.created_at == before.created_at
        assert (after.title, after.content, after.tags) == (
            before.title,
            before.content,
            before.tags,
        )

    def test_missing_prompt(self, service: PromptService) -> None:
        with pytest.raises(PromptNotFoundError):
            service.update_prompt("missing", "t", "c", [])

    def test_duplicate_title(self, service: PromptService) -> None:
        service.add_prompt("taken", "c")
        other = service.add_prompt("mine", "c", ["x"])
        with pytest.raises(DuplicateTitleError):
            service.update_prompt(other.id, "taken", "changed", ["y"])
        prompt = service.get_prompt(other.id)
        assert prompt.title == "mine"
        assert prompt.content == "c"
        assert prompt.tags == ["x"]

    def test_invalid_tag_leaves_prompt_untouched(self, service: PromptService) -> None:
        created = service.add_prompt("t", "c", ["x"])
        with pytest.raises(InvalidTagError):
            service.update_prompt(created.id, "t2", "c2", ["no way"])
        prompt = service.get_prompt(created.id)
        assert prompt.title == "t"
        assert prompt.tags == ["x"]


class TestDeletePrompt:
    def test_delete_prompt(self, service: PromptService) -> None:
        created = service.add_prompt("p", "c")
        result = service.delete_prompt(created.id)
        assert result.deleted is True
        assert result.id == created.id
        with pytest.raises(PromptNotFoundError):
            service.get_prompt(created.id)

    def test_delete_nonexistent_raises(self, service: PromptService) -> None:
        with pytest.raises(PromptNotFoundError):
            service.delete_prompt("nope")

    def test_cascade_keeps_tags(self, service: PromptService, session: Session) -> None:
        a = service.add_prompt("a", "c", ["shared", "solo"])
        service.add_prompt("b", "c", ["shared"])
        service.delete_prompt(a.id)
        assert _count(session, prompt_tags) == 1
        counts = {t.name: t.prompt_count for t in service.list_tags().tags}
        assert counts == {"shared": 1, "solo": 0}


class TestListPrompts:
    def test_list_empty(self, service: PromptService) -> None:
        page = service.list_prompts()
        assert page.prompts == []
        assert page.total == 0
        assert page.has_more is False

    def test_most_recently_updated_first(self, service: PromptService) -> None:
        first = service.add_prompt("first", "c")
        service.add_prompt("second", "c")
        service.add_prompt("third", "c")
        assert [p.title for p in service.list_prompts().prompts] == ["third", "second", "first"]
        service.update_prompt(first.id, "first", "touched", [])
        assert service.list_prompts().prompts[0].title == "first"

    def test_pagination(self, service: PromptService) -> None:
        for i in range(25):
            service.add_prompt(f"p{i:02d}", "content")
        page = service.list_prompts(limit=10, offset=20)
        assert len(page.prompts) == 5
        assert page.total == 25
        assert page.has_more is False
        assert service.list_prompts(limit=10, offset=0).has_more is True
        assert service.list_prompts(limit=10, offset=10).has_more is True

    def test_pages_cover_everything_once(self, service: PromptService) -> None:
        for i in range(7):
            service.add_prompt(f"p{i}", "c")
        seen: list[str] = []
        offset = 0
        while True:
            page = service.list_prompts(limit=3, offset=offset)
            seen.extend(p.id for p in page.prompts)
            offset += len(page.prompts)
            if not page.has_more:
                break
        assert len(seen) == len(set(seen)) == 7
        assert offset == 7

    def test_snippet_and_tags(self, service: PromptService) -> None:
        service.add_prompt("long", "y" * 500, ["zeta", "alpha"])
        summary = service.list_prompts().prompts[0]
        assert summary.snippet == "y" * 200
        assert summary.tags == ["alpha", "zeta"]

    def test_invalid_limit(self, service: PromptService) -> None:
        with pytest.raises(InvalidInputError):
            service.list_prompts(limit=0)
        with pytest.raises(InvalidInputError):
            service.list_prompts(limit=101)


class TestSearchPrompts:
    def test_matches_title_or_content(self, service: PromptService) -> None:
        service.add_prompt("Python tips", "general advice")
        service.add_prompt("Other", "write PYTHON code")
        service.add_prompt("Unrelated", "nothing here")
        page = service.search_prompts("python")
        assert page.total == 2
        assert page.query == "python"
        assert {p.title for p in page.prompts} == {"Python tips", "Other"}

    def test_wildcards_are_literal(self, service: PromptService) -> None:
        service.add_prompt("100% done", "c")
        service.add_prompt("1000 done", "c")
        service.add_prompt("snake_case", "c")
        service.add_prompt("snakeXcase", "c")
        assert [p.title for p in service.search_prompts("100%").prompts] == ["100% done"]
        assert [p.title for p in service.search_prompts("e_c").prompts] == ["snake_case"]

    def test_no_match(self, service: PromptService) -> None:
        service.add_prompt("a", "b")
        page = service.search_prompts("zzz")
        assert page.total == 0
        assert page.has_more is False

    def test_search_paginates(self, service: PromptService) -> None:
        for i in range(5):
            service.add_prompt(f"match {i}", "c")
        page = service.search_prompts("match", limit=2, offset=4)
        assert page.total == 5
        assert len(page.prompts) == 1
        assert page.has_more is False


class TestFilterByTags:
    def test_or_semantics_without_duplicates(self, service: PromptService) -> None:
        service.add_prompt("both", "c", ["a", "b"])
        service.add_prompt("only-a", "c", ["a"])
        service.add_prompt("only-b", "c", ["b"])
        service.add_prompt("neither", "c", ["z"])
        page = service.filter_by_tags(["A", "b"])
        assert page.total == 3
        assert sorted(p.title for p in page.prompts) == ["both", "only-a", "only-b"]
        assert page.matched_tags == ["a", "b"]

    def test_pages_walk_each_match_once(self, service: PromptService) -> None:
        for i in range(4):
            service.add_prompt(f"both {i}", "c", ["a", "b"])
        for i in range(3):
            service.add_prompt(f"only-a {i}", "c", ["a"])
        service.add_prompt("other", "c", ["z"])
        seen: list[str] = []
        offset = 0
        while True:
            page = service.filter_by_tags(["a", "b"], limit=3, offset=offset)
            assert page.total == 7
            seen.extend(p.id for p in page.prompts)
            offset += len(page.prompts)
            if not page.has_more:
                break
        assert len(seen) == len(set(seen)) == 7
        assert offset == 7

    def test_summary_lists_all_tags(self, service: PromptService) -> None:
        service.add_prompt("p", "c", ["a", "b", "c"])
        page = service.filter_by_tags(["b"])
        assert page.prompts[0].tags == ["a", "b", "c"]

    def test_unknown_tag_matches_nothing(self, service: PromptService) -> None:
        service.add_prompt("p", "c", ["a"])
        assert service.filter_by_tags(["bad tag!"]).total == 0

    def test_requires_tags(self, service: PromptService) -> None:
        with pytest.raises(InvalidInputError):
            service.filter_by_tags([])


class TestListTags:
    def test_counts_sorted_by_name(self, service: PromptService) -> None:
        service.add_prompt("T1", "C1", ["Coding", "Review"])
        service.add_prompt("T2", "C2", ["coding"])
        result = service.list_tags()
        assert result.total == 2
        assert [(t.name, t.prompt_count) for t in result.tags] == [
            ("coding", 2),
            ("review", 1),
        ]

    def test_orphans_retained_after_update(self, service: PromptService) -> None:
        created = service.add_prompt("t", "c", ["old"])
        service.update_prompt(created.id, "t", "c", ["new"])
        counts = {t.name: t.prompt_count for t in service.list_tags().tags}
        assert counts == {"new": 1, "old": 0}

    def test_empty(self, service: PromptService) -> None:
        result = service.list_tags()
        assert result.tags == []
        assert result.total == 0


class TestStorageConstraints:
    def test_trigger_stamps_raw_updates(self, service: PromptService, session: Session) -> None:
        created = service.add_prompt("t", "c")
        before = session.execute(
            text("SELECT updated_at FROM prompts WHERE id = :id"), {"id": created.id}
        ).scalar_one()
        session.execute(
            text("UPDATE prompts SET content = 'raw' WHERE id = :id"), {"id": created.id}
        )
        after = session.execute(
            text("SELECT updated_at FROM prompts WHERE id = :id"), {"id": created.id}
        ).scalar_one()
        assert after != before
        assert len(after) == len(before)
        assert len(after.rsplit(".", 1)[1]) == 6
        session.expire_all()
        stamped = session.get(Prompt, created.id).updated_at
        assert stamped.isoformat(sep=" ", timespec="microseconds") == after

    def test_tag_check_rejects_bypass(self, session: Session) -> None:
        from sqlalchemy.exc import IntegrityError

        with pytest.raises(IntegrityError):
            session.execute(text("INSERT INTO tags (name) VALUES ('Has Space')"))
        session.rollback()

    def test_title_check_rejects_bypass(self, session: Session) -> None:
        from sqlalchemy.exc import IntegrityError

        with pytest.raises(IntegrityError):
            session.execute(
                text(
                    "INSERT INTO prompts (id, title, content, created_at, updated_at) "
                    "VALUES ('x', '', 'c', '2025-01-01', '2025-01-01')"
                )
            )
        session.rollback()
