"""
Record store contract.

Every entity collection supports the same capability set:

- create: assigns a fresh identifier and creation instant
- get: returns None for an absent identifier, never raises
- list: owner- or parent-scoped, in a stable documented order
- update: merges the supplied fields, refreshes updated_at, raises
  RecordNotFoundError for an absent identifier
- delete: idempotent, removes owned children

Request handlers only ever see this interface, so the in-memory store and the
SQL store are interchangeable.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from nexusai.schemas import (
    Conversation,
    ConversationCreate,
    Flashcard,
    FlashcardCreate,
    FlashcardSet,
    FlashcardSetCreate,
    Message,
    MessageCreate,
    Note,
    NoteCreate,
    Quiz,
    QuizAttempt,
    QuizCreate,
    User,
    UserCreate,
    VideoGeneration,
    VideoGenerationCreate,
)

# Fields that an update may never touch
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


class RecordNotFoundError(LookupError):
    """Raised when an update (or a child insert) targets an absent record."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} not found: {record_id}")
        self.entity = entity
        self.record_id = record_id


def new_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_instant(previous: datetime | None) -> datetime:
    """Return the current instant, nudged forward so it is strictly after ``previous``."""
    now = utcnow()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def clean_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Drop fields an update is not allowed to modify."""
    return {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}


class Storage(ABC):
    """Capability set of the record store, per entity type."""

    async def init(self) -> None:
        """Prepare the backing store (create tables, seed the demo user)."""

    async def close(self) -> None:
        """Release resources held by the backing store."""

    # Users
    @abstractmethod
    async def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def create_user(self, data: UserCreate, *, user_id: str | None = None) -> User: ...

    # Conversations
    @abstractmethod
    async def list_conversations(self, user_id: str) -> list[Conversation]: ...

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation | None: ...

    @abstractmethod
    async def create_conversation(self, user_id: str, data: ConversationCreate) -> Conversation: ...

    @abstractmethod
    async def update_conversation(self, conversation_id: str, changes: dict[str, Any]) -> Conversation: ...

    @abstractmethod
    async def delete_conversation(self, conversation_id: str) -> None: ...

    # Messages
    @abstractmethod
    async def list_messages(self, conversation_id: str) -> list[Message]: ...

    @abstractmethod
    async def get_message(self, message_id: str) -> Message | None: ...

    @abstractmethod
    async def create_message(self, conversation_id: str, data: MessageCreate) -> Message: ...

    @abstractmethod
    async def update_message(self, message_id: str, changes: dict[str, Any]) -> Message: ...

    @abstractmethod
    async def delete_message(self, message_id: str) -> None: ...

    # Flashcard sets
    @abstractmethod
    async def list_flashcard_sets(self, user_id: str) -> list[FlashcardSet]: ...

    @abstractmethod
    async def get_flashcard_set(self, set_id: str) -> FlashcardSet | None: ...

    @abstractmethod
    async def create_flashcard_set(self, user_id: str, data: FlashcardSetCreate) -> FlashcardSet: ...

    @abstractmethod
    async def update_flashcard_set(self, set_id: str, changes: dict[str, Any]) -> FlashcardSet: ...

    @abstractmethod
    async def delete_flashcard_set(self, set_id: str) -> None: ...

    # Flashcards
    @abstractmethod
    async def list_flashcards(self, set_id: str) -> list[Flashcard]: ...

    @abstractmethod
    async def get_flashcard(self, card_id: str) -> Flashcard | None: ...

    @abstractmethod
    async def create_flashcard(self, set_id: str, data: FlashcardCreate) -> Flashcard: ...

    @abstractmethod
    async def update_flashcard(self, card_id: str, changes: dict[str, Any]) -> Flashcard: ...

    @abstractmethod
    async def delete_flashcard(self, card_id: str) -> None: ...

    # Notes
    @abstractmethod
    async def list_notes(self, user_id: str) -> list[Note]: ...

    @abstractmethod
    async def get_note(self, note_id: str) -> Note | None: ...

    @abstractmethod
    async def create_note(self, user_id: str, data: NoteCreate) -> Note: ...

    @abstractmethod
    async def update_note(self, note_id: str, changes: dict[str, Any]) -> Note: ...

    @abstractmethod
    async def delete_note(self, note_id: str) -> None: ...

    # Quizzes
    @abstractmethod
    async def list_quizzes(self, user_id: str) -> list[Quiz]: ...

    @abstractmethod
    async def get_quiz(self, quiz_id: str) -> Quiz | None: ...

    @abstractmethod
    async def create_quiz(self, user_id: str, data: QuizCreate) -> Quiz: ...

    @abstractmethod
    async def update_quiz(self, quiz_id: str, changes: dict[str, Any]) -> Quiz: ...

    @abstractmethod
    async def delete_quiz(self, quiz_id: str) -> None: ...

    # Quiz attempts
    @abstractmethod
    async def list_quiz_attempts(self, user_id: str) -> list[QuizAttempt]: ...

    @abstractmethod
    async def list_attempts_for_quiz(self, quiz_id: str) -> list[QuizAttempt]: ...

    @abstractmethod
    async def get_quiz_attempt(self, attempt_id: str) -> QuizAttempt | None: ...

    @abstractmethod
    async def create_quiz_attempt(
        self,
        quiz_id: str,
        user_id: str,
        answers: list[Any],
        score: int,
        total_questions: int,
    ) -> QuizAttempt: ...

    @abstractmethod
    async def update_quiz_attempt(self, attempt_id: str, changes: dict[str, Any]) -> QuizAttempt: ...

    @abstractmethod
    async def delete_quiz_attempt(self, attempt_id: str) -> None: ...

    # Video generations
    @abstractmethod
    async def list_video_generations(self, user_id: str) -> list[VideoGeneration]: ...

    @abstractmethod
    async def get_video_generation(self, video_id: str) -> VideoGeneration | None: ...

    @abstractmethod
    async def create_video_generation(self, user_id: str, data: VideoGenerationCreate) -> VideoGeneration: ...

    @abstractmethod
    async def update_video_generation(self, video_id: str, changes: dict[str, Any]) -> VideoGeneration: ...

    @abstractmethod
    async def delete_video_generation(self, video_id: str) -> None: ...
