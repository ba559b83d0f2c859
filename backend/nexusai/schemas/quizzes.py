"""Quiz and quiz attempt schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from nexusai.schemas.base import BaseSchema, reject_null

QuizDifficulty = Literal["easy", "medium", "hard", "mixed"]


class QuizQuestion(BaseSchema):
    """One question of a quiz.

    ``correct_answer`` is usually an option index, but any JSON value is kept
    as-is and compared strictly when grading.
    """

    type: str = "multiple-choice"
    question: str = Field(..., min_length=1)
    options: list[str] = Field(default_factory=list)
    correct_answer: Any
    explanation: str | None = None


class QuizCreate(BaseSchema):
    """Schema for creating a quiz directly."""

    title: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1)
    difficulty: QuizDifficulty = "medium"
    questions: list[QuizQuestion] = Field(default_factory=list)


class Quiz(QuizCreate):
    """Schema for reading quiz data."""

    id: str
    user_id: str
    created_at: datetime


class QuizUpdate(BaseSchema):
    """Schema for updating a quiz. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=255)
    subject: str | None = Field(None, min_length=1)
    difficulty: QuizDifficulty | None = None
    questions: list[QuizQuestion] | None = None

    @field_validator("title", "subject", "difficulty", "questions")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


class QuizGenerateRequest(BaseSchema):
    """Request to generate a quiz with the provider."""

    subject: str = Field(..., min_length=1)
    difficulty: QuizDifficulty = "medium"
    question_count: int = Field(5, ge=1, le=50)
    question_types: list[str] = Field(default_factory=lambda: ["multiple-choice"])


class QuizAttemptSubmit(BaseSchema):
    """Answers submitted for a quiz, by question position."""

    answers: list[Any]


class QuizAttempt(BaseSchema):
    """Schema for reading a graded attempt."""

    id: str
    quiz_id: str
    user_id: str
    answers: list[Any]
    score: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    completed_at: datetime


class QuizAttemptUpdate(BaseSchema):
    """Schema for updating an attempt. New answers are re-graded."""

    answers: list[Any] | None = None

    @field_validator("answers")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)
