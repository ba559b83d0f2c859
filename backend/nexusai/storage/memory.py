"""In-memory record store (demo mode).

Each entity type lives in its own dict guarded by its own asyncio.Lock.
Operations touching a parent and its children take the parent lock first.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

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
    VideoStatus,
)
from nexusai.storage.base import (
    RecordNotFoundError,
    Storage,
    clean_changes,
    new_id,
    next_instant,
    utcnow,
)
from nexusai.storage.seed import DEMO_USER

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class _Collection(Generic[R]):
    """One entity map. Dict order doubles as insertion order."""

    def __init__(self, model: type[R], entity: str):
        self.model = model
        self.entity = entity
        self.records: dict[str, R] = {}
        self.lock = asyncio.Lock()

    def insert(self, **fields: Any) -> R:
        record_id = new_id()
        while record_id in self.records:
            record_id = new_id()
        record = self.model.model_validate({"id": record_id, **fields})
        self.records[record_id] = record
        return record

    def select(
        self,
        predicate: Callable[[R], bool],
        sort_key: Callable[[R], datetime],
        *,
        newest_first: bool,
    ) -> list[R]:
        # sorted() is stable with reverse=True too, so ties keep insertion order
        matches = [r for r in self.records.values() if predicate(r)]
        return sorted(matches, key=sort_key, reverse=newest_first)

    def merge(self, record_id: str, changes: dict[str, Any]) -> R:
        existing = self.records.get(record_id)
        if existing is None:
            raise RecordNotFoundError(self.entity, record_id)
        data = existing.model_dump()
        data.update(clean_changes(changes))
        if "updated_at" in self.model.model_fields:
            data["updated_at"] = next_instant(existing.updated_at)
        updated = self.model.model_validate(data)
        self.records[record_id] = updated
        return updated

    def remove_where(self, predicate: Callable[[R], bool]) -> int:
        doomed = [key for key, r in self.records.items() if predicate(r)]
        for key in doomed:
            del self.records[key]
        return len(doomed)


@asynccontextmanager
async def _locked(*collections: _Collection):
    """Acquire collection locks in the given (parent first) order."""
    acquired = []
    try:
        for collection in collections:
            await collection.lock.acquire()
            acquired.append(collection)
        yield
    finally:
        for collection in reversed(acquired):
            collection.lock.release()


def _recency(record) -> datetime:
    return record.updated_at or record.created_at


class MemoryStorage(Storage):
    """Record store backed by process memory. Contents vanish on restart."""

    def __init__(self, default_user_id: str = "default-user"):
        self.default_user_id = default_user_id
        self.users = _Collection(User, "User")
        self.conversations = _Collection(Conversation, "Conversation")
        self.messages = _Collection(Message, "Message")
        self.flashcard_sets = _Collection(FlashcardSet, "Flashcard set")
        self.flashcards = _Collection(Flashcard, "Flashcard")
        self.notes = _Collection(Note, "Note")
        self.quizzes = _Collection(Quiz, "Quiz")
        self.quiz_attempts = _Collection(QuizAttempt, "Quiz attempt")
        self.video_generations = _Collection(VideoGeneration, "Video generation")
        self._seed_demo_user()

    def _seed_demo_user(self) -> None:
        user = User.model_validate(
            {**DEMO_USER.model_dump(), "id": self.default_user_id, "created_at": utcnow()}
        )
        self.users.records[user.id] = user
        logger.debug("Seeded demo user %s", user.id)

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        return self.users.records.get(user_id)

    async def get_user_by_username(self, username: str) -> User | None:
        return next((u for u in self.users.records.values() if u.username == username), None)

    async def create_user(self, data: UserCreate, *, user_id: str | None = None) -> User:
        async with self.users.lock:
            if await self.get_user_by_username(data.username) is not None:
                raise ValueError(f"Username already taken: {data.username}")
            if user_id is None:
                return self.users.insert(**data.model_dump(), created_at=utcnow())
            user = User.model_validate({**data.model_dump(), "id": user_id, "created_at": utcnow()})
            self.users.records[user_id] = user
            return user

    # -------------------------------------------------------------------------
    # Conversations & messages
    # -------------------------------------------------------------------------

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        return self.conversations.select(lambda c: c.user_id == user_id, _recency, newest_first=True)

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self.conversations.records.get(conversation_id)

    async def create_conversation(self, user_id: str, data: ConversationCreate) -> Conversation:
        now = utcnow()
        async with self.conversations.lock:
            return self.conversations.insert(
                **data.model_dump(), user_id=user_id, created_at=now, updated_at=now
            )

    async def update_conversation(self, conversation_id: str, changes: dict[str, Any]) -> Conversation:
        async with self.conversations.lock:
            return self.conversations.merge(conversation_id, changes)

    async def delete_conversation(self, conversation_id: str) -> None:
        async with _locked(self.conversations, self.messages):
            self.conversations.records.pop(conversation_id, None)
            self.messages.remove_where(lambda m: m.conversation_id == conversation_id)

    async def list_messages(self, conversation_id: str) -> list[Message]:
        return self.messages.select(
            lambda m: m.conversation_id == conversation_id,
            lambda m: m.created_at,
            newest_first=False,
        )

    async def get_message(self, message_id: str) -> Message | None:
        return self.messages.records.get(message_id)

    async def create_message(self, conversation_id: str, data: MessageCreate) -> Message:
        async with _locked(self.conversations, self.messages):
            if conversation_id not in self.conversations.records:
                raise RecordNotFoundError("Conversation", conversation_id)
            return self.messages.insert(
                **data.model_dump(), conversation_id=conversation_id, created_at=utcnow()
            )

    async def update_message(self, message_id: str, changes: dict[str, Any]) -> Message:
        async with self.messages.lock:
            return self.messages.merge(message_id, changes)

    async def delete_message(self, message_id: str) -> None:
        async with self.messages.lock:
            self.messages.records.pop(message_id, None)

    # -------------------------------------------------------------------------
    # Flashcard sets & flashcards
    # -------------------------------------------------------------------------

    async def list_flashcard_sets(self, user_id: str) -> list[FlashcardSet]:
        return self.flashcard_sets.select(lambda s: s.user_id == user_id, _recency, newest_first=True)

    async def get_flashcard_set(self, set_id: str) -> FlashcardSet | None:
        return self.flashcard_sets.records.get(set_id)

    async def create_flashcard_set(self, user_id: str, data: FlashcardSetCreate) -> FlashcardSet:
        now = utcnow()
        async with self.flashcard_sets.lock:
            return self.flashcard_sets.insert(
                **data.model_dump(), user_id=user_id, created_at=now, updated_at=now
            )

    async def update_flashcard_set(self, set_id: str, changes: dict[str, Any]) -> FlashcardSet:
        async with self.flashcard_sets.lock:
            return self.flashcard_sets.merge(set_id, changes)

    async def delete_flashcard_set(self, set_id: str) -> None:
        async with _locked(self.flashcard_sets, self.flashcards):
            self.flashcard_sets.records.pop(set_id, None)
            self.flashcards.remove_where(lambda c: c.set_id == set_id)

    async def list_flashcards(self, set_id: str) -> list[Flashcard]:
        return self.flashcards.select(
            lambda c: c.set_id == set_id,
            lambda c: c.created_at,
            newest_first=False,
        )

    async def get_flashcard(self, card_id: str) -> Flashcard | None:
        return self.flashcards.records.get(card_id)

    async def create_flashcard(self, set_id: str, data: FlashcardCreate) -> Flashcard:
        async with _locked(self.flashcard_sets, self.flashcards):
            if set_id not in self.flashcard_sets.records:
                raise RecordNotFoundError("Flashcard set", set_id)
            return self.flashcards.insert(
                **data.model_dump(),
                set_id=set_id,
                review_count=0,
                mastery_level=0,
                last_reviewed=None,
                created_at=utcnow(),
            )

    async def update_flashcard(self, card_id: str, changes: dict[str, Any]) -> Flashcard:
        async with self.flashcards.lock:
            return self.flashcards.merge(card_id, changes)

    async def delete_flashcard(self, card_id: str) -> None:
        async with self.flashcards.lock:
            self.flashcards.records.pop(card_id, None)

    # -------------------------------------------------------------------------
    # Notes
    # -------------------------------------------------------------------------

    async def list_notes(self, user_id: str) -> list[Note]:
        return self.notes.select(lambda n: n.user_id == user_id, _recency, newest_first=True)

    async def get_note(self, note_id: str) -> Note | None:
        return self.notes.records.get(note_id)

    async def create_note(self, user_id: str, data: NoteCreate) -> Note:
        now = utcnow()
        async with self.notes.lock:
            return self.notes.insert(**data.model_dump(), user_id=user_id, created_at=now, updated_at=now)

    async def update_note(self, note_id: str, changes: dict[str, Any]) -> Note:
        async with self.notes.lock:
            return self.notes.merge(note_id, changes)

    async def delete_note(self, note_id: str) -> None:
        async with self.notes.lock:
            self.notes.records.pop(note_id, None)

    # -------------------------------------------------------------------------
    # Quizzes & attempts
    # -------------------------------------------------------------------------

    async def list_quizzes(self, user_id: str) -> list[Quiz]:
        return self.quizzes.select(lambda q: q.user_id == user_id, lambda q: q.created_at, newest_first=True)

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        return self.quizzes.records.get(quiz_id)

    async def create_quiz(self, user_id: str, data: QuizCreate) -> Quiz:
        async with self.quizzes.lock:
            return self.quizzes.insert(**data.model_dump(), user_id=user_id, created_at=utcnow())

    async def update_quiz(self, quiz_id: str, changes: dict[str, Any]) -> Quiz:
        async with self.quizzes.lock:
            return self.quizzes.merge(quiz_id, changes)

    async def delete_quiz(self, quiz_id: str) -> None:
        async with _locked(self.quizzes, self.quiz_attempts):
            self.quizzes.records.pop(quiz_id, None)
            self.quiz_attempts.remove_where(lambda a: a.quiz_id == quiz_id)

    async def list_quiz_attempts(self, user_id: str) -> list[QuizAttempt]:
        return self.quiz_attempts.select(
            lambda a: a.user_id == user_id, lambda a: a.completed_at, newest_first=True
        )

    async def list_attempts_for_quiz(self, quiz_id: str) -> list[QuizAttempt]:
        return self.quiz_attempts.select(
            lambda a: a.quiz_id == quiz_id, lambda a: a.completed_at, newest_first=True
        )

    async def get_quiz_attempt(self, attempt_id: str) -> QuizAttempt | None:
        return self.quiz_attempts.records.get(attempt_id)

    async def create_quiz_attempt(
        self,
        quiz_id: str,
        user_id: str,
        answers: list[Any],
        score: int,
        total_questions: int,
    ) -> QuizAttempt:
        async with _locked(self.quizzes, self.quiz_attempts):
            if quiz_id not in self.quizzes.records:
                raise RecordNotFoundError("Quiz", quiz_id)
            return self.quiz_attempts.insert(
                quiz_id=quiz_id,
                user_id=user_id,
                answers=answers,
                score=score,
                total_questions=total_questions,
                completed_at=utcnow(),
            )

    async def update_quiz_attempt(self, attempt_id: str, changes: dict[str, Any]) -> QuizAttempt:
        async with self.quiz_attempts.lock:
            return self.quiz_attempts.merge(attempt_id, changes)

    async def delete_quiz_attempt(self, attempt_id: str) -> None:
        async with self.quiz_attempts.lock:
            self.quiz_attempts.records.pop(attempt_id, None)

    # -------------------------------------------------------------------------
    # Video generations
    # -------------------------------------------------------------------------

    async def list_video_generations(self, user_id: str) -> list[VideoGeneration]:
        return self.video_generations.select(
            lambda v: v.user_id == user_id, lambda v: v.created_at, newest_first=True
        )

    async def get_video_generation(self, video_id: str) -> VideoGeneration | None:
        return self.video_generations.records.get(video_id)

    async def create_video_generation(self, user_id: str, data: VideoGenerationCreate) -> VideoGeneration:
        async with self.video_generations.lock:
            return self.video_generations.insert(
                **data.model_dump(),
                user_id=user_id,
                status=VideoStatus.PENDING,
                video_url=None,
                thumbnail_url=None,
                completed_at=None,
                created_at=utcnow(),
            )

    async def update_video_generation(self, video_id: str, changes: dict[str, Any]) -> VideoGeneration:
        async with self.video_generations.lock:
            return self.video_generations.merge(video_id, changes)

    async def delete_video_generation(self, video_id: str) -> None:
        async with self.video_generations.lock:
            self.video_generations.records.pop(video_id, None)
