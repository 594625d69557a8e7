"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_TRIGGER_SQL = """
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


def upgrade() -> None:
    op.create_table(
        "prompts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), unique=True, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.CheckConstraint(
            "length(title) BETWEEN 1 AND 200", name="ck_prompts_title_length"
        ),
        sa.CheckConstraint("length(content) > 0", name="ck_prompts_content_not_empty"),
    )
    op.create_index("idx_prompts_updated_at", "prompts", ["updated_at"])
    op.create_table(
        "tags",
        sa.Column("name", sa.String(50), primary_key=True),
        sa.CheckConstraint(
            "length(name) BETWEEN 1 AND 50 AND name NOT GLOB '*[^a-z0-9_-]*'",
            name="ck_tags_name_format",
        ),
    )
    op.create_table(
        "prompt_tags",
        sa.Column(
            "prompt_id",
            sa.String(36),
            sa.ForeignKey("prompts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_name",
            sa.String(50),
            sa.ForeignKey("tags.name", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("idx_prompt_tags_tag_name", "prompt_tags", ["tag_name"])
    op.get_bind().exec_driver_sql(_TRIGGER_SQL)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS prompts_touch_updated_at")
    op.drop_index("idx_prompt_tags_tag_name", table_name="prompt_tags")
    op.drop_table("prompt_tags")
    op.drop_table("tags")
    op.drop_index("idx_prompts_updated_at", table_name="prompts")
    op.drop_table("prompts")
