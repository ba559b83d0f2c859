"""LLM provider access.

Model names are resolved once through the ModelRegistry into a Provider
variant; the LLMService then dispatches a single-turn completion to the
matching vendor SDK, with a timeout and retries for transient failures.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum as PyEnum

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from nexusai.config import Settings, sanitize_error

logger = logging.getLogger(__name__)

UNSUPPORTED_MODEL_REPLY = "Model not supported"

_SDK_ERRORS = (openai.OpenAIError, anthropic.AnthropicError)


# =============================================================================
# MODEL REGISTRY
# =============================================================================


class Provider(str, PyEnum):
    """Which client serves a model."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class ModelSpec:
    """A chat model and the provider that serves it.

    ``api_model`` is the name sent to the vendor; None means the provider default.
    """

    id: str
    name: str
    provider: Provider
    vendor: str
    description: str = ""
    max_tokens: int = 0
    supports_images: bool = False
    supports_files: bool = False
    api_model: str | None = None


AVAILABLE_MODELS: tuple[ModelSpec, ...] = (
    ModelSpec(
        id="gpt-5",
        name="GPT-5",
        provider=Provider.OPENAI,
        vendor="openai",
        description="Most advanced OpenAI model with exceptional reasoning",
        max_tokens=128000,
        supports_images=True,
        supports_files=True,
        api_model="gpt-5",
    ),
    ModelSpec(
        id="gpt-4o",
        name="GPT-4o",
        provider=Provider.OPENAI,
        vendor="openai",
        description="Fast and capable multimodal model",
        max_tokens=128000,
        supports_images=True,
        supports_files=True,
        api_model="gpt-4o",
    ),
    ModelSpec(
        id="claude-sonnet-4-20250514",
        name="Claude Sonnet 4",
        provider=Provider.ANTHROPIC,
        vendor="anthropic",
        description="Anthropic's most advanced model",
        max_tokens=200000,
        supports_images=True,
        supports_files=True,
        api_model="claude-sonnet-4-20250514",
    ),
    ModelSpec(
        id="claude-3-5-sonnet-20241022",
        name="Claude 3.5 Sonnet",
        provider=Provider.ANTHROPIC,
        vendor="anthropic",
        description="Excellent for complex reasoning and coding",
        max_tokens=200000,
        supports_images=True,
        supports_files=True,
        api_model="claude-3-5-sonnet-20241022",
    ),
    # Listed for the model picker, no client wired up
    ModelSpec(
        id="gemini-pro",
        name="Gemini Pro",
        provider=Provider.UNSUPPORTED,
        vendor="google",
        description="Google's multimodal AI model",
        max_tokens=32000,
        supports_images=True,
        supports_files=True,
    ),
)

# Fallback for names outside the registry
_FAMILY_PREFIXES: tuple[tuple[str, Provider], ...] = (
    ("gpt", Provider.OPENAI),
    ("claude", Provider.ANTHROPIC),
)


class ModelRegistry:
    """Resolves model names to ModelSpecs. Each name is resolved once and cached."""

    def __init__(self, models: tuple[ModelSpec, ...] = AVAILABLE_MODELS):
        self._models = {m.id: m for m in models}
        self._resolved: dict[str, ModelSpec] = dict(self._models)

    def list_models(self) -> list[ModelSpec]:
        return list(self._models.values())

    def resolve(self, model_name: str) -> ModelSpec:
        spec = self._resolved.get(model_name)
        if spec is None:
            spec = self._resolve_by_family(model_name)
            self._resolved[model_name] = spec
        return spec

    @staticmethod
    def _resolve_by_family(model_name: str) -> ModelSpec:
        for prefix, provider in _FAMILY_PREFIXES:
            if model_name.startswith(prefix):
                return ModelSpec(id=model_name, name=model_name, provider=provider, vendor=provider.value)
        logger.info("No provider for model %r", model_name)
        return ModelSpec(id=model_name, name=model_name, provider=Provider.UNSUPPORTED, vendor="unknown")


# =============================================================================
# ERRORS
# =============================================================================


class ProviderErrorKind(str, PyEnum):
    """Classification of a failed provider call."""

    RATE_LIMIT = "rate_limit"
    INVALID_REQUEST = "invalid_request"
    AUTHENTICATION = "authentication"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"

    @property
    def retryable(self) -> bool:
        return self in (
            ProviderErrorKind.RATE_LIMIT,
            ProviderErrorKind.SERVER_ERROR,
            ProviderErrorKind.NETWORK_ERROR,
        )


class ProviderError(Exception):
    """A provider call failed. ``message`` is safe to show to the user."""

    def __init__(self, kind: ProviderErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


_GENERIC_MESSAGES = {
    ProviderErrorKind.RATE_LIMIT: "Rate limit exceeded. Please wait before trying again.",
    ProviderErrorKind.AUTHENTICATION: "Invalid API key or authentication failed.",
    ProviderErrorKind.INVALID_REQUEST: "Invalid request parameters.",
    ProviderErrorKind.SERVER_ERROR: "Server error occurred. Please try again later.",
    ProviderErrorKind.NETWORK_ERROR: "An unexpected error occurred.",
}


def classify_status(status_code: int) -> ProviderErrorKind:
    """Map a provider HTTP status to an error kind."""
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMIT
    if status_code in (401, 403):
        return ProviderErrorKind.AUTHENTICATION
    if status_code >= 500:
        return ProviderErrorKind.SERVER_ERROR
    return ProviderErrorKind.INVALID_REQUEST


def classify_error(error: Exception, *, environment: str = "production") -> ProviderError:
    """Turn an SDK or timeout exception into a ProviderError.

    Only the development environment exposes the raw exception text.
    """
    if isinstance(error, ProviderError):
        return error
    if isinstance(error, (openai.APIStatusError, anthropic.APIStatusError)):
        kind = classify_status(error.status_code)
    elif isinstance(error, (openai.APITimeoutError, anthropic.APITimeoutError, asyncio.TimeoutError)):
        kind = ProviderErrorKind.SERVER_ERROR
    elif isinstance(error, _SDK_ERRORS):
        kind = ProviderErrorKind.NETWORK_ERROR
    else:
        kind = ProviderErrorKind.SERVER_ERROR
    message = sanitize_error(error, environment=environment, generic_message=_GENERIC_MESSAGES[kind])
    return ProviderError(kind, message or _GENERIC_MESSAGES[kind])


# =============================================================================
# SERVICE
# =============================================================================


class LLMService:
    """Single-turn completions against OpenAI- and Anthropic-compatible APIs."""

    def __init__(self, settings: Settings, registry: ModelRegistry | None = None):
        self.settings = settings
        self.registry = registry or ModelRegistry()
        self._openai: AsyncOpenAI | None = None
        self._anthropic: AsyncAnthropic | None = None

    # Clients are built lazily so the app boots without API keys
    @property
    def openai_client(self) -> AsyncOpenAI:
        if self._openai is None:
            if not self.settings.openai_api_key:
                raise ProviderError(ProviderErrorKind.AUTHENTICATION, "OpenAI API key is not configured.")
            self._openai = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=0,
            )
        return self._openai

    @property
    def anthropic_client(self) -> AsyncAnthropic:
        if self._anthropic is None:
            if not self.settings.anthropic_api_key:
                raise ProviderError(ProviderErrorKind.AUTHENTICATION, "Anthropic API key is not configured.")
            self._anthropic = AsyncAnthropic(
                api_key=self.settings.anthropic_api_key,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=0,
            )
        return self._anthropic

    def resolve(self, model_name: str) -> ModelSpec:
        spec = self.registry.resolve(model_name)
        if spec.api_model is None and spec.provider is Provider.OPENAI:
            spec = replace(spec, api_model=self.settings.default_openai_model)
        elif spec.api_model is None and spec.provider is Provider.ANTHROPIC:
            spec = replace(spec, api_model=self.settings.default_anthropic_model)
        return spec

    async def complete(self, model_name: str, prompt: str, *, json_mode: bool = False) -> str:
        """
        Send ``prompt`` as the only user turn and return the reply text.

        Returns the literal "Model not supported" for models without a client.
        An empty string means the provider answered with no text.

        Raises:
            ProviderError: classified failure after retries are exhausted
        """
        spec = self.resolve(model_name)
        if spec.provider is Provider.UNSUPPORTED:
            return UNSUPPORTED_MODEL_REPLY

        if spec.provider is Provider.OPENAI:
            return await self._with_retry(lambda: self._complete_openai(spec.api_model, prompt, json_mode))
        return await self._with_retry(lambda: self._complete_anthropic(spec.api_model, prompt, json_mode))

    async def _complete_openai(self, api_model: str, prompt: str, json_mode: bool) -> str:
        kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
        response = await self.openai_client.chat.completions.create(
            model=api_model,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return response.choices[0].message.content or ""

    async def _complete_anthropic(self, api_model: str, prompt: str, json_mode: bool) -> str:
        kwargs = {"system": "Respond with valid JSON only."} if json_mode else {}
        message = await self.anthropic_client.messages.create(
            model=api_model,
            max_tokens=self.settings.anthropic_max_tokens,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        return "".join(block.text for block in message.content if block.type == "text")

    async def _with_retry(self, call_factory) -> str:
        """
        Run a provider call with a timeout, retrying transient failures
        with exponential backoff.

        Args:
            call_factory: Callable that returns a new coroutine each invocation.
        """
        max_attempts = max(1, self.settings.llm_max_attempts)
        for attempt in range(max_attempts):
            try:
                return await asyncio.wait_for(call_factory(), timeout=self.settings.llm_timeout_seconds)
            except ProviderError:
                raise
            except (*_SDK_ERRORS, asyncio.TimeoutError) as e:
                error = classify_error(e, environment=self.settings.environment)
                if error.retryable and attempt < max_attempts - 1:
                    delay = self.settings.llm_retry_base_delay * (2 ** attempt)
                    logger.warning(
                        "Provider transient error %s (attempt %d/%d), retrying in %.1fs: %s",
                        error.kind.value, attempt + 1, max_attempts, delay, str(e),
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error("Provider call failed (%s) after %d attempt(s): %s", error.kind.value, attempt + 1, str(e))
                raise error from e
            except Exception as e:
                # Malformed vendor payloads and the like are not retried
                logger.exception("Provider call raised unexpectedly on attempt %d", attempt + 1)
                raise classify_error(e, environment=self.settings.environment) from e
        raise ProviderError(ProviderErrorKind.SERVER_ERROR, _GENERIC_MESSAGES[ProviderErrorKind.SERVER_ERROR])
