from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field


class PromptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    tags: list[str] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


class PromptSummary(BaseModel):
    """One row of a list, search or filter page."""

    id: str
    title: str
    snippet: str = Field(..., description="First 200 characters of the content")
    tags: list[str] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


class PromptCreated(BaseModel):
    id: str
    title: str
    created_at: datetime.datetime


class PromptUpdated(BaseModel):
    id: str
    title: str
    updated_at: datetime.datetime


class PromptDeleted(BaseModel):
    deleted: bool = True
    id: str


class PromptPage(BaseModel):
    prompts: list[PromptSummary] = Field(default_factory=list)
    total: int = Field(..., description="Size of the whole matching set, not just this page")
    limit: int
    offset: int
    has_more: bool


class SearchPage(PromptPage):
    query: str


class TagFilterPage(PromptPage):
    matched_tags: list[str] = Field(default_factory=list)


class TagCount(BaseModel):
    name: str
    prompt_count: int


class TagList(BaseModel):
    tags: list[TagCount] = Field(default_factory=list)
    total: int
