from __future__ import annotations

import datetime
import threading

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from prompt_store.models.base import Base
from prompt_store.validation import TAG_MAX_LENGTH, TITLE_MAX_LENGTH

_clock_lock = threading.Lock()
_last_stamp: datetime.datetime | None = None


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, strictly increasing within this process."""
    global _last_stamp
    with _clock_lock:
        now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
        if _last_stamp is not None and now <= _last_stamp:
            now = _last_stamp + datetime.timedelta(microseconds=1)
        _last_stamp = now
        return now


# Backstop for writes that bypass the ORM: a title/content change that leaves
# updated_at untouched gets stamped by the engine itself.
UPDATED_AT_TRIGGER_SQL = """
CREATE TRIGGER IF NOT EXISTS prompts_touch_updated_at
AFTER UPDATE OF title, content ON prompts
FOR EACH ROW
WHEN NEW.updated_at IS OLD.updated_at
BEGIN
    UPDATE prompts
    SET updated_at = strftime('%Y-%m-%d %H:%M:%f000', 'now')
    WHERE id = NEW.id;
END
"""

prompt_tags = Table(
    "prompt_tags",
    Base.metadata,
    Column(
        "prompt_id",
        String(36),
        ForeignKey("prompts.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_name",
        String(TAG_MAX_LENGTH),
        ForeignKey("tags.name", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("idx_prompt_tags_tag_name", "tag_name"),
)


class Prompt(Base):
    __tablename__ = "prompts"
    __table_args__ = (
        CheckConstraint(
            f"length(title) BETWEEN 1 AND {TITLE_MAX_LENGTH}",
            name="ck_prompts_title_length",
        ),
        CheckConstraint("length(content) > 0", name="ck_prompts_content_not_empty"),
        Index("idx_prompts_updated_at", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), unique=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # Associations are written with Core statements (replace-all on update)
    # and removed by the ON DELETE CASCADE, so the ORM only reads them.
    tags: Mapped[list[Tag]] = relationship(
        "Tag",
        secondary=prompt_tags,
        order_by="Tag.name",
        viewonly=True,
    )

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]

    def revise(self, title: str, content: str) -> None:
        """Replace title and content, always advancing ``updated_at``."""
        self.title = title
        self.content = content
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"<Prompt(id={self.id!r}, title={self.title!r})>"


class Tag(Base):
    __tablename__ = "tags"
    __table_args__ = (
        CheckConstraint(
            f"length(name) BETWEEN 1 AND {TAG_MAX_LENGTH} "
            "AND name NOT GLOB '*[^a-z0-9_-]*'",
            name="ck_tags_name_format",
        ),
    )

    name: Mapped[str] = mapped_column(String(TAG_MAX_LENGTH), primary_key=True)

    def __repr__(self) -> str:
        return f"<Tag(name={self.name!r})>"


@event.listens_for(Prompt.__table__, "after_create")
def _create_updated_at_trigger(target, connection, **kw) -> None:
    connection.exec_driver_sql(UPDATED_AT_TRIGGER_SQL)
