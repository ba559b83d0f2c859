"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

This migration creates the complete NexusAI database schema:
- Tables: users, conversations, messages, flashcard_sets, flashcards, notes,
  quizzes, quiz_attempts, video_generations
- Every table: auto-increment ``seq`` primary key plus unique string ``id``
- Indexes: owner/parent scoped listing indexes
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _keys() -> list[sa.Column]:
    return [
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(64), nullable=False),
    ]


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, postgresql.TIMESTAMP(timezone=True), nullable=nullable)


def upgrade() -> None:
    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        *_keys(),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password", sa.Text(), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("avatar", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=True)

    # ==========================================================================
    # CONVERSATIONS / MESSAGES
    # ==========================================================================
    op.create_table(
        "conversations",
        *_keys(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_conversations_id", "conversations", ["id"], unique=True)
    op.create_index("idx_conversations_user_updated_at", "conversations", ["user_id", "updated_at"])

    op.create_table(
        "messages",
        *_keys(),
        sa.Column("conversation_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("attachments", postgresql.JSONB(), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_messages_id", "messages", ["id"], unique=True)
    op.create_index("idx_messages_conversation_created_at", "messages", ["conversation_id", "created_at"])

    # ==========================================================================
    # FLASHCARDS
    # ==========================================================================
    op.create_table(
        "flashcard_sets",
        *_keys(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("subject", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_flashcard_sets_id", "flashcard_sets", ["id"], unique=True)
    op.create_index("idx_flashcard_sets_user_updated_at", "flashcard_sets", ["user_id", "updated_at"])

    op.create_table(
        "flashcards",
        *_keys(),
        sa.Column("set_id", sa.String(64), nullable=False),
        sa.Column("front", sa.Text(), nullable=False),
        sa.Column("back", sa.Text(), nullable=False),
        sa.Column("difficulty", sa.Integer(), nullable=False, server_default="1"),
        _timestamp("last_reviewed", nullable=True),
        sa.Column("review_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mastery_level", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["set_id"], ["flashcard_sets.id"], ondelete="CASCADE"),
        sa.CheckConstraint("difficulty BETWEEN 1 AND 3", name="valid_difficulty"),
        sa.CheckConstraint("mastery_level BETWEEN 0 AND 100", name="valid_mastery_level"),
    )
    op.create_index("ix_flashcards_id", "flashcards", ["id"], unique=True)
    op.create_index("idx_flashcards_set_created_at", "flashcards", ["set_id", "created_at"])

    # ==========================================================================
    # NOTES
    # ==========================================================================
    op.create_table(
        "notes",
        *_keys(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.JSONB(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_notes_id", "notes", ["id"], unique=True)
    op.create_index("idx_notes_user_updated_at", "notes", ["user_id", "updated_at"])

    # ==========================================================================
    # QUIZZES / ATTEMPTS
    # ==========================================================================
    op.create_table(
        "quizzes",
        *_keys(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("difficulty", sa.String(20), nullable=False),
        sa.Column("questions", postgresql.JSONB(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_quizzes_id", "quizzes", ["id"], unique=True)
    op.create_index("idx_quizzes_user_created_at", "quizzes", ["user_id", "created_at"])

    op.create_table(
        "quiz_attempts",
        *_keys(),
        sa.Column("quiz_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("answers", postgresql.JSONB(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        _timestamp("completed_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["quiz_id"], ["quizzes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_quiz_attempts_id", "quiz_attempts", ["id"], unique=True)
    op.create_index("idx_quiz_attempts_quiz_id", "quiz_attempts", ["quiz_id"])
    op.create_index("idx_quiz_attempts_user_completed_at", "quiz_attempts", ["user_id", "completed_at"])

    # ==========================================================================
    # VIDEO GENERATIONS
    # ==========================================================================
    op.create_table(
        "video_generations",
        *_keys(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("style", sa.String(100), nullable=False),
        sa.Column("aspect_ratio", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("completed_at", nullable=True),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="valid_video_status",
        ),
    )
    op.create_index("ix_video_generations_id", "video_generations", ["id"], unique=True)
    op.create_index("idx_video_generations_user_created_at", "video_generations", ["user_id", "created_at"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("video_generations")
    op.drop_table("quiz_attempts")
    op.drop_table("quizzes")
    op.drop_table("notes")
    op.drop_table("flashcards")
    op.drop_table("flashcard_sets")
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("users")
