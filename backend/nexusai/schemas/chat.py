"""Pydantic schemas for conversations, messages and relay frames."""

from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, Field, field_validator

from nexusai.schemas.base import BaseSchema, reject_null

MessageRole = Literal["user", "assistant", "system"]


# Request schemas
class ConversationCreate(BaseSchema):
    """Request to create a new conversation."""

    title: str = Field(..., min_length=1)
    model: str = "gpt-5"


class ConversationUpdate(BaseSchema):
    """Request to update a conversation. All fields optional."""

    title: str | None = Field(None, min_length=1)
    model: str | None = None

    @field_validator("title", "model")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


class MessageCreate(BaseSchema):
    """Request to add a message to a conversation."""

    model_config = ConfigDict(str_strip_whitespace=False)

    role: MessageRole
    content: str
    attachments: list[dict[str, Any]] | None = None


class MessageUpdate(BaseSchema):
    """Request to update a message. All fields optional."""

    model_config = ConfigDict(str_strip_whitespace=False)

    role: MessageRole | None = None
    content: str | None = None
    attachments: list[dict[str, Any]] | None = None

    @field_validator("role", "content")
    @classmethod
    def _not_null(cls, value):
        return reject_null(value)


# Response schemas
class Conversation(BaseSchema):
    """Conversation record."""

    id: str
    user_id: str
    title: str
    model: str
    created_at: datetime
    updated_at: datetime


class Message(BaseSchema):
    """Chat message record."""

    model_config = ConfigDict(str_strip_whitespace=False)

    id: str
    conversation_id: str
    role: MessageRole
    content: str
    attachments: list[dict[str, Any]] | None = None
    created_at: datetime


# Relay frames
class ChatMessageFrame(BaseSchema):
    """Inbound frame sent by a client over the chat socket."""

    model_config = ConfigDict(str_strip_whitespace=False)

    type: Literal["chat_message"]
    conversation_id: str
    content: str
    # Stored as "user" whatever the client claims
    role: str | None = None
    model: str
    attachments: list[dict[str, Any]] | None = None
