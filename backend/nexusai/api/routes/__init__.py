"""API routes package."""

from nexusai.api.routes import (
    chat,
    flashcards,
    models,
    notes,
    quizzes,
    uploads,
    users,
    videos,
)

__all__ = [
    "chat",
    "flashcards",
    "models",
    "notes",
    "quizzes",
    "uploads",
    "users",
    "videos",
]
