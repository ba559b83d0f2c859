"""Chat relay: frame handling and the /ws endpoint."""

import json

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from nexusai.schemas import ConversationCreate
from nexusai.services.chat_relay import EMPTY_REPLY_FALLBACK, ChatRelay, RelayOutcome


def _frame(conversation_id: str, content: str = "hello", model: str = "gpt-5", **extra) -> str:
    return json.dumps({
        "type": "chat_message",
        "conversationId": conversation_id,
        "content": content,
        "role": "user",
        "model": model,
        **extra,
    })


def _rate_limited() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return openai.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)


@pytest.fixture
def sent() -> list[dict]:
    return []


@pytest.fixture
def relay(storage, fake_llm, sent) -> ChatRelay:
    async def send(frame: dict) -> None:
        sent.append(frame)

    return ChatRelay(storage, fake_llm, send)


@pytest.fixture
async def conversation(storage):
    return await storage.create_conversation("default-user", ConversationCreate(title="Chat"))


# =============================================================================
# RELAY
# =============================================================================


async def test_reply_is_persisted_and_relayed(relay, storage, conversation, sent, fake_llm):
    fake_llm.script("Hi there!")

    outcome = await relay.handle_frame(_frame(conversation.id))

    assert outcome is RelayOutcome.REPLIED
    messages = await storage.list_messages(conversation.id)
    assert [(m.role, m.content) for m in messages] == [("user", "hello"), ("assistant", "Hi there!")]
    assert sent[0] == {"type": "typing", "isTyping": True}
    assert sent[1] == {"type": "typing", "isTyping": False}
    assert sent[2]["type"] == "message"
    assert sent[2]["message"]["id"] == messages[1].id
    assert sent[2]["message"]["conversationId"] == conversation.id
    assert fake_llm.calls[0]["prompt"] == "hello"


async def test_attachments_are_kept_on_user_message(relay, storage, conversation):
    attachments = [{"id": "f1", "originalName": "notes.pdf"}]

    await relay.handle_frame(_frame(conversation.id, attachments=attachments))

    user_message = (await storage.list_messages(conversation.id))[0]
    assert user_message.attachments == attachments


async def test_only_raw_content_is_sent(relay, conversation, fake_llm):
    await relay.handle_frame(_frame(conversation.id, content="first"))
    await relay.handle_frame(_frame(conversation.id, content="second"))

    assert [c["prompt"] for c in fake_llm.calls] == ["first", "second"]


async def test_empty_reply_uses_fallback(relay, storage, conversation, fake_llm):
    fake_llm.script("")

    await relay.handle_frame(_frame(conversation.id))

    assert (await storage.list_messages(conversation.id))[-1].content == EMPTY_REPLY_FALLBACK


async def test_unsupported_model_replies_literal(relay, storage, conversation, fake_llm):
    outcome = await relay.handle_frame(_frame(conversation.id, model="gemini-pro"))

    assert outcome is RelayOutcome.REPLIED
    assert (await storage.list_messages(conversation.id))[-1].content == "Model not supported"
    assert fake_llm.calls == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("not json", RelayOutcome.IGNORED_MALFORMED),
        ("[1, 2]", RelayOutcome.IGNORED_MALFORMED),
        (json.dumps({"type": "chat_message", "content": "no conversation"}), RelayOutcome.IGNORED_MALFORMED),
        (json.dumps({"type": "ping"}), RelayOutcome.IGNORED_UNSUPPORTED_TYPE),
    ],
)
async def test_bad_frames_are_ignored(relay, storage, conversation, sent, raw, expected):
    assert await relay.handle_frame(raw) is expected
    assert sent == []
    assert await storage.list_messages(conversation.id) == []


async def test_unknown_conversation_reports_error(relay, sent, fake_llm):
    outcome = await relay.handle_frame(_frame("missing"))

    assert outcome is RelayOutcome.UNKNOWN_CONVERSATION
    assert sent == [{"type": "error", "message": "Conversation not found"}]
    assert fake_llm.calls == []


async def test_provider_failure_keeps_user_message(relay, storage, conversation, sent, fake_llm, settings):
    fake_llm.script(*[_rate_limited()] * settings.llm_max_attempts)

    outcome = await relay.handle_frame(_frame(conversation.id))

    assert outcome is RelayOutcome.PROVIDER_FAILED
    assert [m.role for m in await storage.list_messages(conversation.id)] == ["user"]
    assert sent[0] == {"type": "typing", "isTyping": True}
    assert sent[1]["type"] == "error"
    assert sent[1]["message"].startswith("Failed to get AI response: ")


async def test_unexpected_provider_failure_is_reported(relay, storage, conversation, sent, fake_llm):
    fake_llm.script(IndexError("list index out of range"))

    outcome = await relay.handle_frame(_frame(conversation.id))

    assert outcome is RelayOutcome.PROVIDER_FAILED
    assert sent[-1] == {"type": "error", "message": "Failed to get AI response: list index out of range"}
    assert [m.role for m in await storage.list_messages(conversation.id)] == ["user"]


async def test_any_inbound_role_is_stored_as_user(relay, storage, conversation):
    outcome = await relay.handle_frame(_frame(conversation.id, role="assistant"))

    assert outcome is RelayOutcome.REPLIED
    assert [m.role for m in await storage.list_messages(conversation.id)] == ["user", "assistant"]


async def test_conversation_not_touched_by_default(relay, storage, conversation):
    await relay.handle_frame(_frame(conversation.id))
    assert (await storage.get_conversation(conversation.id)).updated_at == conversation.updated_at


async def test_conversation_touched_when_enabled(storage, fake_llm, conversation):
    async def send(frame: dict) -> None:
        pass

    relay = ChatRelay(storage, fake_llm, send, touch_conversation=True)
    await relay.handle_frame(_frame(conversation.id))

    assert (await storage.get_conversation(conversation.id)).updated_at > conversation.updated_at


# =============================================================================
# WEBSOCKET
# =============================================================================


def test_socket_round_trip(app):
    with TestClient(app) as client:
        conversation = client.post("/api/conversations", json={"title": "Socket"}).json()

        with client.websocket_connect("/ws") as ws:
            ws.send_text(_frame(conversation["id"]))
            assert ws.receive_json() == {"type": "typing", "isTyping": True}
            assert ws.receive_json() == {"type": "typing", "isTyping": False}
            reply = ws.receive_json()

        assert reply["type"] == "message"
        assert reply["message"]["role"] == "assistant"
        assert reply["message"]["content"] == "Hello from the model"

        messages = client.get(f"/api/conversations/{conversation['id']}/messages").json()
        assert [m["role"] for m in messages] == ["user", "assistant"]


def test_socket_ignores_malformed_frames(app):
    with TestClient(app) as client:
        conversation = client.post("/api/conversations", json={"title": "Socket"}).json()

        with client.websocket_connect("/ws") as ws:
            ws.send_text("{{{ not json")
            ws.send_text(json.dumps({"type": "presence"}))
            ws.send_text(_frame(conversation["id"], content="real question"))
            # The first frame back answers the valid message
            assert ws.receive_json() == {"type": "typing", "isTyping": True}
            ws.receive_json()
            ws.receive_json()

        messages = client.get(f"/api/conversations/{conversation['id']}/messages").json()
        assert [m["content"] for m in messages][0] == "real question"
        assert len(messages) == 2


def test_socket_reports_provider_failure(app, fake_llm, settings):
    fake_llm.script(*[_rate_limited()] * settings.llm_max_attempts)

    with TestClient(app) as client:
        conversation = client.post("/api/conversations", json={"title": "Socket"}).json()

        with client.websocket_connect("/ws") as ws:
            ws.send_text(_frame(conversation["id"]))
            assert ws.receive_json() == {"type": "typing", "isTyping": True}
            error = ws.receive_json()

        assert error["type"] == "error"
        assert error["message"].startswith("Failed to get AI response: ")
        messages = client.get(f"/api/conversations/{conversation['id']}/messages").json()
        assert [m["role"] for m in messages] == ["user"]


def test_socket_survives_unexpected_provider_failure(app, fake_llm):
    fake_llm.script(IndexError("list index out of range"))

    with TestClient(app) as client:
        conversation = client.post("/api/conversations", json={"title": "Socket"}).json()

        with client.websocket_connect("/ws") as ws:
            ws.send_text(_frame(conversation["id"], content="first"))
            assert ws.receive_json() == {"type": "typing", "isTyping": True}
            error = ws.receive_json()

            ws.send_text(_frame(conversation["id"], content="second"))
            assert ws.receive_json() == {"type": "typing", "isTyping": True}
            assert ws.receive_json() == {"type": "typing", "isTyping": False}
            reply = ws.receive_json()

        assert error == {"type": "error", "message": "Failed to get AI response: list index out of range"}
        assert reply["message"]["content"] == "Hello from the model"


def test_socket_survives_storage_failure(app, storage, monkeypatch):
    real_create = storage.create_message
    failures = ["database is locked"]

    async def flaky_create(conversation_id, data):
        if failures:
            raise RuntimeError(failures.pop())
        return await real_create(conversation_id, data)

    monkeypatch.setattr(storage, "create_message", flaky_create)

    with TestClient(app) as client:
        conversation = client.post("/api/conversations", json={"title": "Socket"}).json()

        with client.websocket_connect("/ws") as ws:
            ws.send_text(_frame(conversation["id"], content="first"))
            error = ws.receive_json()

            ws.send_text(_frame(conversation["id"], content="second"))
            assert ws.receive_json() == {"type": "typing", "isTyping": True}
            assert ws.receive_json() == {"type": "typing", "isTyping": False}
            assert ws.receive_json()["type"] == "message"

        assert error == {"type": "error", "message": "Failed to get AI response: database is locked"}
