"""Chat relay: one instance per WebSocket connection.

Frames are handled one at a time in arrival order. Each inbound frame ends in
a RelayOutcome so callers (and tests) can tell ignored frames from failures.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum as PyEnum
from typing import Any

from pydantic import ValidationError

from nexusai.schemas.chat import ChatMessageFrame, MessageCreate
from nexusai.services.providers import LLMService, ProviderError
from nexusai.storage.base import RecordNotFoundError, Storage

logger = logging.getLogger(__name__)

EMPTY_REPLY_FALLBACK = "Sorry, I couldn't generate a response."

SendFrame = Callable[[dict[str, Any]], Awaitable[None]]


class RelayOutcome(str, PyEnum):
    """What happened to an inbound frame."""

    REPLIED = "replied"
    PROVIDER_FAILED = "provider_failed"
    UNKNOWN_CONVERSATION = "unknown_conversation"
    IGNORED_MALFORMED = "ignored_malformed"
    IGNORED_UNSUPPORTED_TYPE = "ignored_unsupported_type"


def typing_frame(is_typing: bool) -> dict[str, Any]:
    return {"type": "typing", "isTyping": is_typing}


def error_frame(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


class ChatRelay:
    """Persists a user turn, forwards it to the provider and relays the reply.

    Only the raw user content is sent; conversation history is not replayed.
    A provider failure leaves the user message in place.
    """

    def __init__(
        self,
        storage: Storage,
        llm: LLMService,
        send: SendFrame,
        *,
        touch_conversation: bool = False,
    ):
        self.storage = storage
        self.llm = llm
        self.send = send
        self.touch_conversation = touch_conversation

    def parse_frame(self, raw: str) -> ChatMessageFrame | RelayOutcome:
        """Decode a raw frame, or return the ignore outcome that applies."""
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Ignoring frame that is not valid JSON")
            return RelayOutcome.IGNORED_MALFORMED

        if not isinstance(payload, dict):
            logger.warning("Ignoring frame that is not a JSON object")
            return RelayOutcome.IGNORED_MALFORMED
        if payload.get("type") != "chat_message":
            logger.warning("Ignoring frame of unsupported type %r", payload.get("type"))
            return RelayOutcome.IGNORED_UNSUPPORTED_TYPE

        try:
            return ChatMessageFrame.model_validate(payload)
        except ValidationError as e:
            logger.warning("Ignoring malformed chat_message frame: %s", e.errors(include_url=False))
            return RelayOutcome.IGNORED_MALFORMED

    async def handle_frame(self, raw: str) -> RelayOutcome:
        frame = self.parse_frame(raw)
        if isinstance(frame, RelayOutcome):
            return frame

        try:
            await self.storage.create_message(
                frame.conversation_id,
                MessageCreate(role="user", content=frame.content, attachments=frame.attachments),
            )
        except RecordNotFoundError:
            logger.warning("Chat frame for unknown conversation %s", frame.conversation_id)
            await self.send(error_frame("Conversation not found"))
            return RelayOutcome.UNKNOWN_CONVERSATION

        if self.touch_conversation:
            await self._touch(frame.conversation_id)

        await self.send(typing_frame(True))

        try:
            reply = await self.llm.complete(frame.model, frame.content)
        except ProviderError as e:
            logger.warning("Provider failed for conversation %s: %s", frame.conversation_id, e.kind.value)
            await self.send(error_frame(f"Failed to get AI response: {e.message}"))
            return RelayOutcome.PROVIDER_FAILED

        try:
            saved = await self.storage.create_message(
                frame.conversation_id,
                MessageCreate(role="assistant", content=reply or EMPTY_REPLY_FALLBACK),
            )
        except RecordNotFoundError:
            # Conversation deleted while the provider was answering
            logger.warning("Conversation %s vanished before the reply was saved", frame.conversation_id)
            await self.send(error_frame("Conversation not found"))
            return RelayOutcome.UNKNOWN_CONVERSATION

        if self.touch_conversation:
            await self._touch(frame.conversation_id)

        await self.send(typing_frame(False))
        await self.send({"type": "message", "message": saved.to_wire()})
        return RelayOutcome.REPLIED

    async def _touch(self, conversation_id: str) -> None:
        try:
            await self.storage.update_conversation(conversation_id, {})
        except RecordNotFoundError:
            pass
