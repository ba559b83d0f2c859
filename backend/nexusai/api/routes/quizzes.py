"""Quiz routes: CRUD, generation and graded attempts."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import ValidationError

from nexusai.api.deps import CurrentUser, GeneratorDep, StorageDep, owned_or_404, update_failed
from nexusai.schemas.base import MessageResponse
from nexusai.schemas.quizzes import (
    Quiz,
    QuizAttempt,
    QuizAttemptSubmit,
    QuizAttemptUpdate,
    QuizCreate,
    QuizGenerateRequest,
    QuizUpdate,
)
from nexusai.services.providers import ProviderError
from nexusai.services.study_generator import grade_answers
from nexusai.storage.base import RecordNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["quizzes"])
attempts_router = APIRouter(prefix="/quiz-attempts", tags=["quizzes"])


# =============================================================================
# QUIZZES
# =============================================================================


@router.get("", response_model=list[Quiz])
async def list_quizzes(current_user: CurrentUser, storage: StorageDep) -> list[Quiz]:
    """List quizzes, newest first."""
    return await storage.list_quizzes(current_user.id)


@router.post("", response_model=Quiz)
async def create_quiz(data: QuizCreate, current_user: CurrentUser, storage: StorageDep) -> Quiz:
    """Create a quiz from explicit questions."""
    return await storage.create_quiz(current_user.id, data)


@router.post("/generate", response_model=Quiz)
async def generate_quiz(
    data: QuizGenerateRequest,
    current_user: CurrentUser,
    storage: StorageDep,
    generator: GeneratorDep,
) -> Quiz:
    """
    Generate a quiz with the provider and store it.

    A malformed reply still stores a quiz, with no questions and the
    title "<subject> Quiz".
    """
    try:
        quiz = await generator.generate_quiz(
            data.subject,
            data.difficulty,
            data.question_count,
            data.question_types,
        )
    except ProviderError as e:
        logger.error("Quiz generation failed: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate quiz",
        )
    return await storage.create_quiz(current_user.id, quiz)


@router.get("/{quiz_id}", response_model=Quiz)
async def get_quiz(quiz_id: str, current_user: CurrentUser, storage: StorageDep) -> Quiz:
    return owned_or_404(await storage.get_quiz(quiz_id), current_user, "Quiz")


@router.put("/{quiz_id}", response_model=Quiz)
async def update_quiz(
    quiz_id: str,
    data: QuizUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> Quiz:
    """Update a quiz. Existing attempts keep the score they were graded with."""
    quiz = await storage.get_quiz(quiz_id)
    if quiz is None or quiz.user_id != current_user.id:
        raise update_failed("Quiz")
    try:
        return await storage.update_quiz(quiz_id, data.model_dump(exclude_unset=True))
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Quiz")


@router.delete("/{quiz_id}", response_model=MessageResponse)
async def delete_quiz(quiz_id: str, current_user: CurrentUser, storage: StorageDep) -> MessageResponse:
    """Delete a quiz and its attempts."""
    quiz = await storage.get_quiz(quiz_id)
    if quiz is not None:
        owned_or_404(quiz, current_user, "Quiz")
        await storage.delete_quiz(quiz_id)
    return MessageResponse(message="Quiz deleted")


@router.get("/{quiz_id}/attempts", response_model=list[QuizAttempt])
async def list_quiz_attempts_for_quiz(
    quiz_id: str,
    current_user: CurrentUser,
    storage: StorageDep,
) -> list[QuizAttempt]:
    owned_or_404(await storage.get_quiz(quiz_id), current_user, "Quiz")
    return await storage.list_attempts_for_quiz(quiz_id)


@router.post("/{quiz_id}/attempts", response_model=QuizAttempt)
async def submit_quiz_attempt(
    quiz_id: str,
    data: QuizAttemptSubmit,
    current_user: CurrentUser,
    storage: StorageDep,
) -> QuizAttempt:
    """
    Grade and store an attempt.

    Answers are compared by position; extra answers are ignored and missing
    ones count as wrong.
    """
    quiz = owned_or_404(await storage.get_quiz(quiz_id), current_user, "Quiz")
    score, total = grade_answers(quiz.questions, data.answers)
    try:
        attempt = await storage.create_quiz_attempt(quiz_id, current_user.id, data.answers, score, total)
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    logger.info("Quiz %s attempt scored %d/%d", quiz_id, score, total)
    return attempt


# =============================================================================
# ATTEMPTS
# =============================================================================


@attempts_router.get("", response_model=list[QuizAttempt])
async def list_quiz_attempts(current_user: CurrentUser, storage: StorageDep) -> list[QuizAttempt]:
    """List the user's attempts across all quizzes, most recent first."""
    return await storage.list_quiz_attempts(current_user.id)


@attempts_router.get("/{attempt_id}", response_model=QuizAttempt)
async def get_quiz_attempt(attempt_id: str, current_user: CurrentUser, storage: StorageDep) -> QuizAttempt:
    return owned_or_404(await storage.get_quiz_attempt(attempt_id), current_user, "Quiz attempt")


@attempts_router.put("/{attempt_id}", response_model=QuizAttempt)
async def update_quiz_attempt(
    attempt_id: str,
    data: QuizAttemptUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> QuizAttempt:
    """Replace an attempt's answers and grade them against the quiz as it is now."""
    attempt = await storage.get_quiz_attempt(attempt_id)
    if attempt is None or attempt.user_id != current_user.id:
        raise update_failed("Quiz attempt")

    changes = data.model_dump(exclude_unset=True)
    if data.answers is not None:
        quiz = await storage.get_quiz(attempt.quiz_id)
        if quiz is None:
            raise update_failed("Quiz attempt")
        score, total = grade_answers(quiz.questions, data.answers)
        changes.update(score=score, total_questions=total)

    try:
        return await storage.update_quiz_attempt(attempt_id, changes)
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Quiz attempt")


@attempts_router.delete("/{attempt_id}", response_model=MessageResponse)
async def delete_quiz_attempt(attempt_id: str, current_user: CurrentUser, storage: StorageDep) -> MessageResponse:
    attempt = await storage.get_quiz_attempt(attempt_id)
    if attempt is not None:
        owned_or_404(attempt, current_user, "Quiz attempt")
        await storage.delete_quiz_attempt(attempt_id)
    return MessageResponse(message="Quiz attempt deleted")
