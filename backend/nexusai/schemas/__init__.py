"""Pydantic schemas for API request/response validation."""

from nexusai.schemas.user import User, UserCreate, UserRead
from nexusai.schemas.chat import (
    ChatMessageFrame,
    Conversation,
    ConversationCreate,
    ConversationUpdate,
    Message,
    MessageCreate,
    MessageUpdate,
)
from nexusai.schemas.flashcards import (
    Flashcard,
    FlashcardCreate,
    FlashcardSet,
    FlashcardSetCreate,
    FlashcardSetUpdate,
    FlashcardUpdate,
)
from nexusai.schemas.notes import Note, NoteCreate, NoteUpdate
from nexusai.schemas.quizzes import (
    Quiz,
    QuizAttempt,
    QuizCreate,
    QuizQuestion,
    QuizUpdate,
)
from nexusai.schemas.videos import (
    VideoGeneration,
    VideoGenerationCreate,
    VideoGenerationUpdate,
    VideoStatus,
)

__all__ = [
    # User
    "User",
    "UserCreate",
    "UserRead",
    # Chat
    "ChatMessageFrame",
    "Conversation",
    "ConversationCreate",
    "ConversationUpdate",
    "Message",
    "MessageCreate",
    "MessageUpdate",
    # Flashcards
    "Flashcard",
    "FlashcardCreate",
    "FlashcardSet",
    "FlashcardSetCreate",
    "FlashcardSetUpdate",
    "FlashcardUpdate",
    # Notes
    "Note",
    "NoteCreate",
    "NoteUpdate",
    # Quizzes
    "Quiz",
    "QuizAttempt",
    "QuizCreate",
    "QuizQuestion",
    "QuizUpdate",
    # Videos
    "VideoGeneration",
    "VideoGenerationCreate",
    "VideoGenerationUpdate",
    "VideoStatus",
]
