"""Note schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from nexusai.schemas.base import BaseSchema, reject_null


class NoteBase(BaseSchema):
    """Base note schema."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str
    subject: str | None = None
    tags: list[str] | None = None


class NoteCreate(NoteBase):
    """Schema for creating a note."""


class Note(NoteBase):
    """Schema for reading note data."""

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime


class NoteUpdate(BaseSchema):
    """Schema for updating a note. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = None
    subject: str | None = None
    tags: list[str] | None = None

    @field_validator("title", "content")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)
