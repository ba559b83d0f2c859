"""Flashcard set and flashcard schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from nexusai.schemas.base import BaseSchema, reject_null


class FlashcardSetBase(BaseSchema):
    """Base flashcard set schema."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    subject: str | None = None


class FlashcardSetCreate(FlashcardSetBase):
    """Schema for creating a flashcard set."""


class FlashcardSet(FlashcardSetBase):
    """Schema for reading flashcard set data."""

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime


class FlashcardSetUpdate(BaseSchema):
    """Schema for updating a flashcard set. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    subject: str | None = None

    @field_validator("title")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


class FlashcardCreate(BaseSchema):
    """Schema for creating a flashcard inside a set."""

    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
    difficulty: int = Field(1, ge=1, le=3)  # 1=easy, 2=medium, 3=hard


class Flashcard(FlashcardCreate):
    """Schema for reading flashcard data."""

    id: str
    set_id: str
    review_count: int = 0
    mastery_level: int = Field(0, ge=0, le=100)
    last_reviewed: datetime | None = None
    created_at: datetime


class FlashcardUpdate(BaseSchema):
    """Schema for updating a flashcard. All fields optional."""

    front: str | None = Field(None, min_length=1)
    back: str | None = Field(None, min_length=1)
    difficulty: int | None = Field(None, ge=1, le=3)
    review_count: int | None = Field(None, ge=0)
    mastery_level: int | None = Field(None, ge=0, le=100)
    last_reviewed: datetime | None = None

    @field_validator("front", "back", "difficulty", "review_count", "mastery_level")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


class FlashcardReview(BaseSchema):
    """Outcome of one review of a flashcard."""

    correct: bool


class FlashcardGenerateRequest(BaseSchema):
    """Request to generate flashcards from free text."""

    content: str = Field(..., min_length=1)
    subject: str | None = None
    count: int = Field(5, ge=1, le=50)


class GeneratedFlashcard(BaseSchema):
    """A front/back pair proposed by the provider."""

    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
