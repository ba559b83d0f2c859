"""Pytest configuration and fixtures."""

from collections import deque
from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from nexusai.api.deps import get_llm_service
from nexusai.config import Settings
from nexusai.main import create_app
from nexusai.services.providers import LLMService
from nexusai.storage import MemoryStorage


class FakeLLMService(LLMService):
    """LLMService whose vendor calls are scripted.

    Model resolution, timeouts and retries run for real; only the SDK call is
    replaced. Each entry in ``replies`` is returned (or raised, if it is an
    exception) by one call; when the script runs out ``default_reply`` is used.
    """

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.replies: deque = deque()
        self.default_reply = "Hello from the model"
        self.calls: list[dict] = []

    def script(self, *replies) -> None:
        self.replies.extend(replies)

    async def _next(self, vendor: str, api_model: str, prompt: str, json_mode: bool) -> str:
        self.calls.append({"vendor": vendor, "model": api_model, "prompt": prompt, "json_mode": json_mode})
        reply = self.replies.popleft() if self.replies else self.default_reply
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def _complete_openai(self, api_model: str, prompt: str, json_mode: bool) -> str:
        return await self._next("openai", api_model, prompt, json_mode)

    async def _complete_anthropic(self, api_model: str, prompt: str, json_mode: bool) -> str:
        return await self._next("anthropic", api_model, prompt, json_mode)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="development",
        storage_backend="memory",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_size_bytes=1024,
        llm_retry_base_delay=0,
        llm_max_attempts=2,
        video_generation_delay_seconds=0.05,
    )


@pytest.fixture
def storage(settings: Settings) -> MemoryStorage:
    return MemoryStorage(default_user_id=settings.default_user_id)


@pytest.fixture
def fake_llm(settings: Settings) -> FakeLLMService:
    return FakeLLMService(settings)


@pytest.fixture
def app(settings: Settings, storage: MemoryStorage, fake_llm: FakeLLMService) -> FastAPI:
    application = create_app(settings, storage=storage)
    application.dependency_overrides[get_llm_service] = lambda: fake_llm
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    await app.state.video_generator.shutdown()
