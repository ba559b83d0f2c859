"""Video generation schemas."""

from datetime import datetime
from enum import Enum as PyEnum

from pydantic import Field, field_validator

from nexusai.schemas.base import BaseSchema, reject_null


class VideoStatus(str, PyEnum):
    """Lifecycle of a video generation."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class VideoGenerationCreate(BaseSchema):
    """Schema for requesting a video generation."""

    prompt: str = Field(..., min_length=1)
    duration: int = Field(..., gt=0)  # seconds
    style: str = Field(..., min_length=1)
    aspect_ratio: str = Field(..., min_length=1)


class VideoGeneration(VideoGenerationCreate):
    """Schema for reading video generation data."""

    id: str
    user_id: str
    status: VideoStatus = VideoStatus.PENDING
    video_url: str | None = None
    thumbnail_url: str | None = None
    created_at: datetime
    completed_at: datetime | None = None


class VideoGenerationUpdate(BaseSchema):
    """Schema for updating a video generation. All fields optional."""

    prompt: str | None = Field(None, min_length=1)
    duration: int | None = Field(None, gt=0)
    style: str | None = Field(None, min_length=1)
    aspect_ratio: str | None = Field(None, min_length=1)
    status: VideoStatus | None = None
    video_url: str | None = None
    thumbnail_url: str | None = None
    completed_at: datetime | None = None

    @field_validator("prompt", "duration", "style", "aspect_ratio", "status")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)
