"""Record store backed by a relational database via async SQLAlchemy."""

import logging
from enum import Enum as PyEnum
from typing import Any, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nexusai.db import models as orm
from nexusai.db.base import Base
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


def _to_columns(fields: dict[str, Any]) -> dict[str, Any]:
    """Plain column values: enums become their values."""
    return {k: (v.value if isinstance(v, PyEnum) else v) for k, v in fields.items()}


def _to_record(schema: type[R], row: Base) -> R:
    data = {
        attr.key: getattr(row, attr.key)
        for attr in sa_inspect(row).mapper.column_attrs
        if attr.key != "seq"
    }
    return schema.model_validate(data)


class SqlStorage(Storage):
    """SQL implementation of the record store.

    Each public operation runs in its own session and transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_user_id: str = "default-user",
    ):
        self.session_factory = session_factory
        self.default_user_id = default_user_id

    @property
    def engine(self):
        return self.session_factory.kw["bind"]

    async def init(self) -> None:
        """Create missing tables and seed the demo user.

        Production schemas are managed by Alembic; create_all only fills gaps.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        if await self.get_user(self.default_user_id) is None:
            await self.create_user(DEMO_USER, user_id=self.default_user_id)
            logger.info("Seeded demo user %s", self.default_user_id)

    async def close(self) -> None:
        await self.engine.dispose()

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    @staticmethod
    async def _fetch(db: AsyncSession, table: type[Base], record_id: str):
        result = await db.execute(select(table).where(table.id == record_id))
        return result.scalar_one_or_none()

    async def _get(self, table: type[Base], schema: type[R], record_id: str) -> R | None:
        async with self.session_factory() as db:
            row = await self._fetch(db, table, record_id)
            return _to_record(schema, row) if row is not None else None

    async def _select(self, table: type[Base], schema: type[R], *criteria, order_by) -> list[R]:
        stmt = select(table).where(*criteria).order_by(*order_by)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [_to_record(schema, row) for row in result.scalars()]

    async def _insert(
        self,
        table: type[Base],
        schema: type[R],
        fields: dict[str, Any],
        *,
        parent: tuple[type[Base], str, str] | None = None,
    ) -> R:
        """Insert a row; ``parent`` is (table, id, entity name) that must exist."""
        record = schema.model_validate({"id": new_id(), **fields})
        async with self.session_factory() as db:
            if parent is not None:
                parent_table, parent_id, parent_entity = parent
                if await self._fetch(db, parent_table, parent_id) is None:
                    raise RecordNotFoundError(parent_entity, parent_id)
            db.add(table(**_to_columns(record.model_dump())))
            await db.commit()
        return record

    async def _merge(
        self,
        table: type[Base],
        schema: type[R],
        entity: str,
        record_id: str,
        changes: dict[str, Any],
    ) -> R:
        async with self.session_factory() as db:
            row = await self._fetch(db, table, record_id)
            if row is None:
                raise RecordNotFoundError(entity, record_id)
            current = _to_record(schema, row)
            data = current.model_dump()
            data.update(clean_changes(changes))
            if "updated_at" in schema.model_fields:
                data["updated_at"] = next_instant(current.updated_at)
            updated = schema.model_validate(data)
            for key, value in _to_columns(updated.model_dump()).items():
                setattr(row, key, value)
            await db.commit()
        return updated

    async def _delete(self, *statements) -> None:
        async with self.session_factory() as db:
            for stmt in statements:
                await db.execute(stmt)
            await db.commit()

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: str) -> User | None:
        return await self._get(orm.User, User, user_id)

    async def get_user_by_username(self, username: str) -> User | None:
        async with self.session_factory() as db:
            result = await db.execute(select(orm.User).where(orm.User.username == username))
            row = result.scalar_one_or_none()
            return _to_record(User, row) if row is not None else None

    async def create_user(self, data: UserCreate, *, user_id: str | None = None) -> User:
        if await self.get_user_by_username(data.username) is not None:
            raise ValueError(f"Username already taken: {data.username}")
        user = User.model_validate(
            {**data.model_dump(), "id": user_id or new_id(), "created_at": utcnow()}
        )
        async with self.session_factory() as db:
            db.add(orm.User(**user.model_dump()))
            await db.commit()
        return user

    # -------------------------------------------------------------------------
    # Conversations & messages
    # -------------------------------------------------------------------------

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        return await self._select(
            orm.Conversation,
            Conversation,
            orm.Conversation.user_id == user_id,
            order_by=(orm.Conversation.updated_at.desc(), orm.Conversation.seq.asc()),
        )

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return await self._get(orm.Conversation, Conversation, conversation_id)

    async def create_conversation(self, user_id: str, data: ConversationCreate) -> Conversation:
        now = utcnow()
        return await self._insert(
            orm.Conversation,
            Conversation,
            {**data.model_dump(), "user_id": user_id, "created_at": now, "updated_at": now},
        )

    async def update_conversation(self, conversation_id: str, changes: dict[str, Any]) -> Conversation:
        return await self._merge(orm.Conversation, Conversation, "Conversation", conversation_id, changes)

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._delete(
            delete(orm.Message).where(orm.Message.conversation_id == conversation_id),
            delete(orm.Conversation).where(orm.Conversation.id == conversation_id),
        )

    async def list_messages(self, conversation_id: str) -> list[Message]:
        return await self._select(
            orm.Message,
            Message,
            orm.Message.conversation_id == conversation_id,
            order_by=(orm.Message.created_at.asc(), orm.Message.seq.asc()),
        )

    async def get_message(self, message_id: str) -> Message | None:
        return await self._get(orm.Message, Message, message_id)

    async def create_message(self, conversation_id: str, data: MessageCreate) -> Message:
        return await self._insert(
            orm.Message,
            Message,
            {**data.model_dump(), "conversation_id": conversation_id, "created_at": utcnow()},
            parent=(orm.Conversation, conversation_id, "Conversation"),
        )

    async def update_message(self, message_id: str, changes: dict[str, Any]) -> Message:
        return await self._merge(orm.Message, Message, "Message", message_id, changes)

    async def delete_message(self, message_id: str) -> None:
        await self._delete(delete(orm.Message).where(orm.Message.id == message_id))

    # -------------------------------------------------------------------------
    # Flashcard sets & flashcards
    # -------------------------------------------------------------------------

    async def list_flashcard_sets(self, user_id: str) -> list[FlashcardSet]:
        return await self._select(
            orm.FlashcardSet,
            FlashcardSet,
            orm.FlashcardSet.user_id == user_id,
            order_by=(orm.FlashcardSet.updated_at.desc(), orm.FlashcardSet.seq.asc()),
        )

    async def get_flashcard_set(self, set_id: str) -> FlashcardSet | None:
        return await self._get(orm.FlashcardSet, FlashcardSet, set_id)

    async def create_flashcard_set(self, user_id: str, data: FlashcardSetCreate) -> FlashcardSet:
        now = utcnow()
        return await self._insert(
            orm.FlashcardSet,
            FlashcardSet,
            {**data.model_dump(), "user_id": user_id, "created_at": now, "updated_at": now},
        )

    async def update_flashcard_set(self, set_id: str, changes: dict[str, Any]) -> FlashcardSet:
        return await self._merge(orm.FlashcardSet, FlashcardSet, "Flashcard set", set_id, changes)

    async def delete_flashcard_set(self, set_id: str) -> None:
        await self._delete(
            delete(orm.Flashcard).where(orm.Flashcard.set_id == set_id),
            delete(orm.FlashcardSet).where(orm.FlashcardSet.id == set_id),
        )

    async def list_flashcards(self, set_id: str) -> list[Flashcard]:
        return await self._select(
            orm.Flashcard,
            Flashcard,
            orm.Flashcard.set_id == set_id,
            order_by=(orm.Flashcard.created_at.asc(), orm.Flashcard.seq.asc()),
        )

    async def get_flashcard(self, card_id: str) -> Flashcard | None:
        return await self._get(orm.Flashcard, Flashcard, card_id)

    async def create_flashcard(self, set_id: str, data: FlashcardCreate) -> Flashcard:
        return await self._insert(
            orm.Flashcard,
            Flashcard,
            {
                **data.model_dump(),
                "set_id": set_id,
                "review_count": 0,
                "mastery_level": 0,
                "last_reviewed": None,
                "created_at": utcnow(),
            },
            parent=(orm.FlashcardSet, set_id, "Flashcard set"),
        )

    async def update_flashcard(self, card_id: str, changes: dict[str, Any]) -> Flashcard:
        return await self._merge(orm.Flashcard, Flashcard, "Flashcard", card_id, changes)

    async def delete_flashcard(self, card_id: str) -> None:
        await self._delete(delete(orm.Flashcard).where(orm.Flashcard.id == card_id))

    # -------------------------------------------------------------------------
    # Notes
    # -------------------------------------------------------------------------

    async def list_notes(self, user_id: str) -> list[Note]:
        return await self._select(
            orm.Note,
            Note,
            orm.Note.user_id == user_id,
            order_by=(orm.Note.updated_at.desc(), orm.Note.seq.asc()),
        )

    async def get_note(self, note_id: str) -> Note | None:
        return await self._get(orm.Note, Note, note_id)

    async def create_note(self, user_id: str, data: NoteCreate) -> Note:
        now = utcnow()
        return await self._insert(
            orm.Note,
            Note,
            {**data.model_dump(), "user_id": user_id, "created_at": now, "updated_at": now},
        )

    async def update_note(self, note_id: str, changes: dict[str, Any]) -> Note:
        return await self._merge(orm.Note, Note, "Note", note_id, changes)

    async def delete_note(self, note_id: str) -> None:
        await self._delete(delete(orm.Note).where(orm.Note.id == note_id))

    # -------------------------------------------------------------------------
    # Quizzes & attempts
    # -------------------------------------------------------------------------

    async def list_quizzes(self, user_id: str) -> list[Quiz]:
        return await self._select(
            orm.Quiz,
            Quiz,
            orm.Quiz.user_id == user_id,
            order_by=(orm.Quiz.created_at.desc(), orm.Quiz.seq.asc()),
        )

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        return await self._get(orm.Quiz, Quiz, quiz_id)

    async def create_quiz(self, user_id: str, data: QuizCreate) -> Quiz:
        return await self._insert(
            orm.Quiz,
            Quiz,
            {**data.model_dump(), "user_id": user_id, "created_at": utcnow()},
        )

    async def update_quiz(self, quiz_id: str, changes: dict[str, Any]) -> Quiz:
        return await self._merge(orm.Quiz, Quiz, "Quiz", quiz_id, changes)

    async def delete_quiz(self, quiz_id: str) -> None:
        await self._delete(
            delete(orm.QuizAttempt).where(orm.QuizAttempt.quiz_id == quiz_id),
            delete(orm.Quiz).where(orm.Quiz.id == quiz_id),
        )

    async def list_quiz_attempts(self, user_id: str) -> list[QuizAttempt]:
        return await self._select(
            orm.QuizAttempt,
            QuizAttempt,
            orm.QuizAttempt.user_id == user_id,
            order_by=(orm.QuizAttempt.completed_at.desc(), orm.QuizAttempt.seq.asc()),
        )

    async def list_attempts_for_quiz(self, quiz_id: str) -> list[QuizAttempt]:
        return await self._select(
            orm.QuizAttempt,
            QuizAttempt,
            orm.QuizAttempt.quiz_id == quiz_id,
            order_by=(orm.QuizAttempt.completed_at.desc(), orm.QuizAttempt.seq.asc()),
        )

    async def get_quiz_attempt(self, attempt_id: str) -> QuizAttempt | None:
        return await self._get(orm.QuizAttempt, QuizAttempt, attempt_id)

    async def create_quiz_attempt(
        self,
        quiz_id: str,
        user_id: str,
        answers: list[Any],
        score: int,
        total_questions: int,
    ) -> QuizAttempt:
        return await self._insert(
            orm.QuizAttempt,
            QuizAttempt,
            {
                "quiz_id": quiz_id,
                "user_id": user_id,
                "answers": answers,
                "score": score,
                "total_questions": total_questions,
                "completed_at": utcnow(),
            },
            parent=(orm.Quiz, quiz_id, "Quiz"),
        )

    async def update_quiz_attempt(self, attempt_id: str, changes: dict[str, Any]) -> QuizAttempt:
        return await self._merge(orm.QuizAttempt, QuizAttempt, "Quiz attempt", attempt_id, changes)

    async def delete_quiz_attempt(self, attempt_id: str) -> None:
        await self._delete(delete(orm.QuizAttempt).where(orm.QuizAttempt.id == attempt_id))

    # -------------------------------------------------------------------------
    # Video generations
    # -------------------------------------------------------------------------

    async def list_video_generations(self, user_id: str) -> list[VideoGeneration]:
        return await self._select(
            orm.VideoGeneration,
            VideoGeneration,
            orm.VideoGeneration.user_id == user_id,
            order_by=(orm.VideoGeneration.created_at.desc(), orm.VideoGeneration.seq.asc()),
        )

    async def get_video_generation(self, video_id: str) -> VideoGeneration | None:
        return await self._get(orm.VideoGeneration, VideoGeneration, video_id)

    async def create_video_generation(self, user_id: str, data: VideoGenerationCreate) -> VideoGeneration:
        return await self._insert(
            orm.VideoGeneration,
            VideoGeneration,
            {
                **data.model_dump(),
                "user_id": user_id,
                "status": VideoStatus.PENDING,
                "video_url": None,
                "thumbnail_url": None,
                "completed_at": None,
                "created_at": utcnow(),
            },
        )

    async def update_video_generation(self, video_id: str, changes: dict[str, Any]) -> VideoGeneration:
        return await self._merge(orm.VideoGeneration, VideoGeneration, "Video generation", video_id, changes)

    async def delete_video_generation(self, video_id: str) -> None:
        await self._delete(delete(orm.VideoGeneration).where(orm.VideoGeneration.id == video_id))
