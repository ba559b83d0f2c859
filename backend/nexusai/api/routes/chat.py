"""API routes for conversations, messages and the chat relay socket."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from nexusai.api.deps import AppSettings, CurrentUser, LLMDep, StorageDep, owned_or_404, update_failed
from nexusai.config import sanitize_error
from nexusai.schemas.base import MessageResponse
from nexusai.schemas.chat import (
    Conversation,
    ConversationCreate,
    ConversationUpdate,
    Message,
    MessageCreate,
    MessageUpdate,
)
from nexusai.schemas.user import User
from nexusai.services.chat_relay import ChatRelay, error_frame
from nexusai.storage.base import RecordNotFoundError, Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["chat"])
messages_router = APIRouter(prefix="/messages", tags=["chat"])
socket_router = APIRouter(tags=["chat"])


async def _owned_conversation(storage: Storage, conversation_id: str, current_user: User) -> Conversation:
    return owned_or_404(await storage.get_conversation(conversation_id), current_user, "Conversation")


async def _owned_message(storage: Storage, message_id: str, current_user: User) -> Message | None:
    """Return the message if its conversation belongs to the user, else None."""
    message = await storage.get_message(message_id)
    if message is None:
        return None
    conversation = await storage.get_conversation(message.conversation_id)
    if conversation is None or conversation.user_id != current_user.id:
        return None
    return message


# =============================================================================
# CONVERSATIONS
# =============================================================================


@router.get("", response_model=list[Conversation])
async def list_conversations(current_user: CurrentUser, storage: StorageDep) -> list[Conversation]:
    """List conversations, most recently updated first."""
    return await storage.list_conversations(current_user.id)


@router.post("", response_model=Conversation)
async def create_conversation(
    data: ConversationCreate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> Conversation:
    """Create a new conversation."""
    conversation = await storage.create_conversation(current_user.id, data)
    logger.info("Created conversation %s", conversation.id)
    return conversation


@router.get("/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, current_user: CurrentUser, storage: StorageDep) -> Conversation:
    """Get a conversation by ID."""
    return await _owned_conversation(storage, conversation_id, current_user)


@router.put("/{conversation_id}", response_model=Conversation)
async def update_conversation(
    conversation_id: str,
    data: ConversationUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> Conversation:
    """Update a conversation's title or model."""
    conversation = await storage.get_conversation(conversation_id)
    if conversation is None or conversation.user_id != current_user.id:
        raise update_failed("Conversation")
    try:
        return await storage.update_conversation(conversation_id, data.model_dump(exclude_unset=True))
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Conversation")


@router.delete("/{conversation_id}", response_model=MessageResponse)
async def delete_conversation(
    conversation_id: str,
    current_user: CurrentUser,
    storage: StorageDep,
) -> MessageResponse:
    """Delete a conversation and all of its messages."""
    conversation = await storage.get_conversation(conversation_id)
    if conversation is not None:
        owned_or_404(conversation, current_user, "Conversation")
        await storage.delete_conversation(conversation_id)
    return MessageResponse(message="Conversation deleted")


@router.get("/{conversation_id}/messages", response_model=list[Message])
async def list_messages(conversation_id: str, current_user: CurrentUser, storage: StorageDep) -> list[Message]:
    """List a conversation's messages, oldest first."""
    await _owned_conversation(storage, conversation_id, current_user)
    return await storage.list_messages(conversation_id)


@router.post("/{conversation_id}/messages", response_model=Message)
async def create_message(
    conversation_id: str,
    data: MessageCreate,
    current_user: CurrentUser,
    storage: StorageDep,
    settings: AppSettings,
) -> Message:
    """Append a message without involving the provider."""
    await _owned_conversation(storage, conversation_id, current_user)
    try:
        message = await storage.create_message(conversation_id, data)
        if settings.touch_conversation_on_message:
            await storage.update_conversation(conversation_id, {})
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return message


# =============================================================================
# MESSAGES
# =============================================================================


@messages_router.get("/{message_id}", response_model=Message)
async def get_message(message_id: str, current_user: CurrentUser, storage: StorageDep) -> Message:
    message = await _owned_message(storage, message_id, current_user)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


@messages_router.put("/{message_id}", response_model=Message)
async def update_message(
    message_id: str,
    data: MessageUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> Message:
    if await _owned_message(storage, message_id, current_user) is None:
        raise update_failed("Message")
    try:
        return await storage.update_message(message_id, data.model_dump(exclude_unset=True))
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Message")


@messages_router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(message_id: str, current_user: CurrentUser, storage: StorageDep) -> MessageResponse:
    if await _owned_message(storage, message_id, current_user) is not None:
        await storage.delete_message(message_id)
    return MessageResponse(message="Message deleted")


# =============================================================================
# RELAY SOCKET
# =============================================================================


@socket_router.websocket("/ws")
async def chat_socket(websocket: WebSocket, storage: StorageDep, llm: LLMDep, settings: AppSettings) -> None:
    """
    Chat relay endpoint.

    Each text frame is handled to completion before the next one is read,
    so replies on one connection arrive in the order the frames were sent.
    """
    await websocket.accept()
    logger.info("Chat socket connected")

    async def send(frame: dict[str, Any]) -> None:
        try:
            await websocket.send_json(frame)
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug("Dropped %s frame for closed socket: %s", frame.get("type"), e)

    relay = ChatRelay(storage, llm, send, touch_conversation=settings.touch_conversation_on_message)

    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            break
        raw = message.get("text")
        if raw is None:
            raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
        try:
            outcome = await relay.handle_frame(raw)
        except Exception as e:
            logger.exception("Chat frame failed; keeping the socket open")
            detail = sanitize_error(e, environment=settings.environment, generic_message="An unexpected error occurred.")
            await send(error_frame(f"Failed to get AI response: {detail}"))
            continue
        logger.debug("Chat frame handled: %s", outcome.value)
    logger.info("Chat socket disconnected")
