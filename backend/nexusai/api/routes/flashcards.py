"""Flashcard set and flashcard routes, including generation and review."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import ValidationError

from nexusai.api.deps import (
    AppSettings,
    CurrentUser,
    GeneratorDep,
    StorageDep,
    owned_or_404,
    update_failed,
)
from nexusai.schemas.base import MessageResponse
from nexusai.schemas.flashcards import (
    Flashcard,
    FlashcardCreate,
    FlashcardGenerateRequest,
    FlashcardReview,
    FlashcardSet,
    FlashcardSetCreate,
    FlashcardSetUpdate,
    FlashcardUpdate,
    GeneratedFlashcard,
)
from nexusai.schemas.user import User
from nexusai.services.providers import ProviderError
from nexusai.storage.base import RecordNotFoundError, Storage, utcnow

logger = logging.getLogger(__name__)

sets_router = APIRouter(prefix="/flashcard-sets", tags=["flashcards"])
router = APIRouter(prefix="/flashcards", tags=["flashcards"])


async def _owned_card(storage: Storage, card_id: str, current_user: User) -> Flashcard | None:
    """Return the card if its set belongs to the user, else None."""
    card = await storage.get_flashcard(card_id)
    if card is None:
        return None
    card_set = await storage.get_flashcard_set(card.set_id)
    if card_set is None or card_set.user_id != current_user.id:
        return None
    return card


# =============================================================================
# SETS
# =============================================================================


@sets_router.get("", response_model=list[FlashcardSet])
async def list_flashcard_sets(current_user: CurrentUser, storage: StorageDep) -> list[FlashcardSet]:
    """List flashcard sets, most recently updated first."""
    return await storage.list_flashcard_sets(current_user.id)


@sets_router.post("", response_model=FlashcardSet)
async def create_flashcard_set(
    data: FlashcardSetCreate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> FlashcardSet:
    return await storage.create_flashcard_set(current_user.id, data)


@sets_router.get("/{set_id}", response_model=FlashcardSet)
async def get_flashcard_set(set_id: str, current_user: CurrentUser, storage: StorageDep) -> FlashcardSet:
    return owned_or_404(await storage.get_flashcard_set(set_id), current_user, "Flashcard set")


@sets_router.put("/{set_id}", response_model=FlashcardSet)
async def update_flashcard_set(
    set_id: str,
    data: FlashcardSetUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> FlashcardSet:
    card_set = await storage.get_flashcard_set(set_id)
    if card_set is None or card_set.user_id != current_user.id:
        raise update_failed("Flashcard set")
    try:
        return await storage.update_flashcard_set(set_id, data.model_dump(exclude_unset=True))
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Flashcard set")


@sets_router.delete("/{set_id}", response_model=MessageResponse)
async def delete_flashcard_set(set_id: str, current_user: CurrentUser, storage: StorageDep) -> MessageResponse:
    """Delete a set together with its cards."""
    card_set = await storage.get_flashcard_set(set_id)
    if card_set is not None:
        owned_or_404(card_set, current_user, "Flashcard set")
        await storage.delete_flashcard_set(set_id)
    return MessageResponse(message="Flashcard set deleted")


@sets_router.get("/{set_id}/flashcards", response_model=list[Flashcard])
async def list_flashcards(set_id: str, current_user: CurrentUser, storage: StorageDep) -> list[Flashcard]:
    """List a set's cards, oldest first."""
    owned_or_404(await storage.get_flashcard_set(set_id), current_user, "Flashcard set")
    return await storage.list_flashcards(set_id)


@sets_router.post("/{set_id}/flashcards", response_model=Flashcard)
async def create_flashcard(
    set_id: str,
    data: FlashcardCreate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> Flashcard:
    owned_or_404(await storage.get_flashcard_set(set_id), current_user, "Flashcard set")
    try:
        return await storage.create_flashcard(set_id, data)
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flashcard set not found")


# =============================================================================
# CARDS
# =============================================================================


@router.post("/generate", response_model=list[GeneratedFlashcard])
async def generate_flashcards(
    data: FlashcardGenerateRequest,
    current_user: CurrentUser,
    generator: GeneratorDep,
) -> list[GeneratedFlashcard]:
    """
    Propose front/back pairs for free text.

    Nothing is stored; the client saves the cards it keeps. A malformed
    provider reply yields an empty list.
    """
    try:
        return await generator.generate_flashcards(data.content, data.subject, data.count)
    except ProviderError as e:
        logger.error("Flashcard generation failed: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate flashcards",
        )


@router.get("/{card_id}", response_model=Flashcard)
async def get_flashcard(card_id: str, current_user: CurrentUser, storage: StorageDep) -> Flashcard:
    card = await _owned_card(storage, card_id, current_user)
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flashcard not found")
    return card


@router.put("/{card_id}", response_model=Flashcard)
async def update_flashcard(
    card_id: str,
    data: FlashcardUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> Flashcard:
    if await _owned_card(storage, card_id, current_user) is None:
        raise update_failed("Flashcard")
    try:
        return await storage.update_flashcard(card_id, data.model_dump(exclude_unset=True))
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Flashcard")


@router.delete("/{card_id}", response_model=MessageResponse)
async def delete_flashcard(card_id: str, current_user: CurrentUser, storage: StorageDep) -> MessageResponse:
    if await _owned_card(storage, card_id, current_user) is not None:
        await storage.delete_flashcard(card_id)
    return MessageResponse(message="Flashcard deleted")


@router.post("/{card_id}/review", response_model=Flashcard)
async def review_flashcard(
    card_id: str,
    data: FlashcardReview,
    current_user: CurrentUser,
    storage: StorageDep,
    settings: AppSettings,
) -> Flashcard:
    """
    Record one review.

    Mastery moves up or down by the configured step and stays within 0-100.
    """
    card = await _owned_card(storage, card_id, current_user)
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flashcard not found")

    step = settings.mastery_step if data.correct else -settings.mastery_step
    changes = {
        "review_count": card.review_count + 1,
        "mastery_level": max(0, min(100, card.mastery_level + step)),
        "last_reviewed": utcnow(),
    }
    try:
        return await storage.update_flashcard(card_id, changes)
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Flashcard not found")
