"""Alembic environment for the prompt store.

Migrations run on the connection handed over by ``prompt_store.database`` via
``config.attributes["connection"]``, so they see the same connection settings
(foreign keys, WAL) as the application.
"""

from __future__ import annotations

from alembic import context

from prompt_store.models import Base

config = context.config
target_metadata = Base.metadata


def run_migrations_online() -> None:
    connection = config.attributes["connection"]
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


run_migrations_online()
