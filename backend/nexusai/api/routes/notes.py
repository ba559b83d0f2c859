"""Notes CRUD routes and AI enhancement."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import ValidationError

from nexusai.api.deps import CurrentUser, GeneratorDep, StorageDep, owned_or_404, update_failed
from nexusai.schemas.base import MessageResponse
from nexusai.schemas.notes import Note, NoteCreate, NoteUpdate
from nexusai.services.providers import ProviderError
from nexusai.storage.base import RecordNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=list[Note])
async def list_notes(current_user: CurrentUser, storage: StorageDep) -> list[Note]:
    """List notes for the current user, most recently updated first."""
    return await storage.list_notes(current_user.id)


@router.post("", response_model=Note)
async def create_note(data: NoteCreate, current_user: CurrentUser, storage: StorageDep) -> Note:
    """Create a new note."""
    return await storage.create_note(current_user.id, data)


@router.get("/{note_id}", response_model=Note)
async def get_note(note_id: str, current_user: CurrentUser, storage: StorageDep) -> Note:
    """Get a specific note by ID."""
    return owned_or_404(await storage.get_note(note_id), current_user, "Note")


@router.put("/{note_id}", response_model=Note)
async def update_note(
    note_id: str,
    data: NoteUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> Note:
    """Update a note."""
    note = await storage.get_note(note_id)
    if note is None or note.user_id != current_user.id:
        raise update_failed("Note")
    try:
        return await storage.update_note(note_id, data.model_dump(exclude_unset=True))
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Note")


@router.delete("/{note_id}", response_model=MessageResponse)
async def delete_note(note_id: str, current_user: CurrentUser, storage: StorageDep) -> MessageResponse:
    """Delete a note. Deleting an absent note succeeds."""
    note = await storage.get_note(note_id)
    if note is not None:
        owned_or_404(note, current_user, "Note")
        await storage.delete_note(note_id)
    return MessageResponse(message="Note deleted")


@router.post("/{note_id}/enhance", response_model=Note)
async def enhance_note(
    note_id: str,
    current_user: CurrentUser,
    storage: StorageDep,
    generator: GeneratorDep,
) -> Note:
    """
    Rewrite a note's content with the provider.

    An unusable reply keeps the original content; the note is still touched.
    """
    note = owned_or_404(await storage.get_note(note_id), current_user, "Note")
    try:
        content = await generator.enhance_note(note)
    except ProviderError as e:
        logger.error("Note enhancement failed for %s: %s", note_id, e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to enhance note",
        )
    try:
        return await storage.update_note(note_id, {"content": content})
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")
