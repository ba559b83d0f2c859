"""
Alembic environment for the NexusAI SQL store.

Migrations cover the nine record tables (users, conversations, messages,
flashcard_sets, flashcards, notes, quizzes, quiz_attempts, video_generations)
declared in nexusai.db.models. They only matter when the app runs with
STORAGE_BACKEND=sql; the in-memory store has no schema.

The target database comes from the app settings unless overridden on the
command line, e.g. ``alembic -x url=postgresql://... upgrade head``.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from nexusai.config import get_settings
from nexusai.db.base import Base
from nexusai.db import models  # noqa: F401 - registers the record tables on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    """Sync driver URL: ``-x url=...`` if given, else the app's postgres settings."""
    override = context.get_x_argument(as_dictionary=True).get("url")
    return override or get_settings().database_url_sync


def run_migrations_offline() -> None:
    """Emit the migration SQL to the script output without connecting."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a short-lived psycopg2 connection."""
    engine = create_engine(get_url(), poolclass=pool.NullPool)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
