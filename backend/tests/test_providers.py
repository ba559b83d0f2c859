"""Model registry, error classification and the retrying completion call."""

import asyncio

import httpx
import openai
import pytest

from nexusai.services.providers import (
    UNSUPPORTED_MODEL_REPLY,
    LLMService,
    ModelRegistry,
    Provider,
    ProviderError,
    ProviderErrorKind,
    classify_error,
    classify_status,
)

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(status_code: int) -> openai.APIStatusError:
    response = httpx.Response(status_code, request=OPENAI_REQUEST)
    return openai.APIStatusError("provider said no", response=response, body=None)


# =============================================================================
# REGISTRY
# =============================================================================


def test_registry_resolves_known_models():
    registry = ModelRegistry()
    assert registry.resolve("gpt-5").provider is Provider.OPENAI
    assert registry.resolve("claude-sonnet-4-20250514").provider is Provider.ANTHROPIC
    assert registry.resolve("gemini-pro").provider is Provider.UNSUPPORTED


def test_registry_falls_back_to_family_prefix():
    registry = ModelRegistry()
    assert registry.resolve("gpt-4.1-mini").provider is Provider.OPENAI
    assert registry.resolve("claude-opus-4").provider is Provider.ANTHROPIC
    assert registry.resolve("llama-3").provider is Provider.UNSUPPORTED


def test_registry_caches_resolution():
    registry = ModelRegistry()
    assert registry.resolve("gpt-custom") is registry.resolve("gpt-custom")


def test_unknown_family_member_uses_default_api_model(settings):
    service = LLMService(settings)
    assert service.resolve("gpt-custom").api_model == settings.default_openai_model
    assert service.resolve("claude-custom").api_model == settings.default_anthropic_model
    assert service.resolve("gpt-4o").api_model == "gpt-4o"


def test_listed_models_include_unsupported_entries():
    ids = [m.id for m in ModelRegistry().list_models()]
    assert ids[:2] == ["gpt-5", "gpt-4o"]
    assert "gemini-pro" in ids


# =============================================================================
# CLASSIFICATION
# =============================================================================


@pytest.mark.parametrize(
    "status_code, kind",
    [
        (429, ProviderErrorKind.RATE_LIMIT),
        (401, ProviderErrorKind.AUTHENTICATION),
        (403, ProviderErrorKind.AUTHENTICATION),
        (400, ProviderErrorKind.INVALID_REQUEST),
        (404, ProviderErrorKind.INVALID_REQUEST),
        (500, ProviderErrorKind.SERVER_ERROR),
        (503, ProviderErrorKind.SERVER_ERROR),
    ],
)
def test_classify_status(status_code, kind):
    assert classify_status(status_code) is kind


def test_classify_error_by_exception_type():
    assert classify_error(_status_error(429)).kind is ProviderErrorKind.RATE_LIMIT
    assert classify_error(asyncio.TimeoutError()).kind is ProviderErrorKind.SERVER_ERROR
    assert classify_error(openai.APIConnectionError(request=OPENAI_REQUEST)).kind is ProviderErrorKind.NETWORK_ERROR
    assert classify_error(KeyError("choices")).kind is ProviderErrorKind.SERVER_ERROR


def test_classify_error_exposes_text_only_in_development():
    error = _status_error(401)
    assert classify_error(error, environment="development").message == str(error)
    assert classify_error(error, environment="production").message == "Invalid API key or authentication failed."


def test_retryable_kinds():
    assert ProviderErrorKind.RATE_LIMIT.retryable
    assert ProviderErrorKind.SERVER_ERROR.retryable
    assert ProviderErrorKind.NETWORK_ERROR.retryable
    assert not ProviderErrorKind.AUTHENTICATION.retryable
    assert not ProviderErrorKind.INVALID_REQUEST.retryable


# =============================================================================
# COMPLETION
# =============================================================================


async def test_complete_routes_by_provider(fake_llm):
    await fake_llm.complete("gpt-5", "hi")
    await fake_llm.complete("claude-3-5-sonnet-20241022", "hi")

    assert [c["vendor"] for c in fake_llm.calls] == ["openai", "anthropic"]
    assert fake_llm.calls[1]["model"] == "claude-3-5-sonnet-20241022"


async def test_unsupported_model_replies_without_calling_out(fake_llm):
    assert await fake_llm.complete("gemini-pro", "hi") == UNSUPPORTED_MODEL_REPLY
    assert fake_llm.calls == []


async def test_transient_failure_is_retried(fake_llm):
    fake_llm.script(_status_error(503), "recovered")

    assert await fake_llm.complete("gpt-5", "hi") == "recovered"
    assert len(fake_llm.calls) == 2


async def test_retries_stop_at_max_attempts(fake_llm, settings):
    fake_llm.script(*[_status_error(500)] * 5)

    with pytest.raises(ProviderError) as exc_info:
        await fake_llm.complete("gpt-5", "hi")

    assert exc_info.value.kind is ProviderErrorKind.SERVER_ERROR
    assert len(fake_llm.calls) == settings.llm_max_attempts


async def test_non_retryable_failure_is_raised_immediately(fake_llm):
    fake_llm.script(_status_error(401))

    with pytest.raises(ProviderError) as exc_info:
        await fake_llm.complete("gpt-5", "hi")

    assert exc_info.value.kind is ProviderErrorKind.AUTHENTICATION
    assert len(fake_llm.calls) == 1


async def test_slow_provider_times_out(settings):
    settings.llm_timeout_seconds = 0.01
    settings.llm_max_attempts = 1

    class SlowService(LLMService):
        async def _complete_openai(self, api_model, prompt, json_mode):
            await asyncio.sleep(1)
            return "too late"

    with pytest.raises(ProviderError) as exc_info:
        await SlowService(settings).complete("gpt-5", "hi")
    assert exc_info.value.kind is ProviderErrorKind.SERVER_ERROR


async def test_missing_api_key_is_an_authentication_error(settings):
    service = LLMService(settings.model_copy(update={"openai_api_key": None}))

    with pytest.raises(ProviderError) as exc_info:
        await service.complete("gpt-5", "hi")
    assert exc_info.value.kind is ProviderErrorKind.AUTHENTICATION


async def test_unexpected_vendor_failure_is_not_retried(fake_llm):
    fake_llm.script(IndexError("list index out of range"), "never reached")

    with pytest.raises(ProviderError) as exc_info:
        await fake_llm.complete("gpt-5", "hi")

    assert exc_info.value.kind is ProviderErrorKind.SERVER_ERROR
    assert exc_info.value.message == "list index out of range"
    assert len(fake_llm.calls) == 1


async def test_production_service_hides_raw_error_text(fake_llm, settings):
    settings.environment = "production"
    fake_llm.script(_status_error(401), IndexError("list index out of range"))

    with pytest.raises(ProviderError) as auth_failure:
        await fake_llm.complete("gpt-5", "hi")
    with pytest.raises(ProviderError) as unexpected:
        await fake_llm.complete("gpt-5", "hi")

    assert auth_failure.value.message == "Invalid API key or authentication failed."
    assert unexpected.value.message == "Server error occurred. Please try again later."
