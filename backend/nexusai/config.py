"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "NexusAI"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Storage
    # "memory" keeps everything in process (demo mode), "sql" uses the database below
    storage_backend: Literal["memory", "sql"] = "memory"
    default_user_id: str = "default-user"

    # Database
    # If database_url_override is set it takes precedence over the postgres_* parts
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "nexusai"
    postgres_password: str = ""
    postgres_db: str = "nexusai"

    @computed_field
    @property
    def database_url(self) -> str:
        """Get async database URL. Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            # Replace scheme for async driver
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            # asyncpg doesn't accept query params via URL
            if url.startswith("postgresql+asyncpg://") and "?" in url:
                url = url.split("?")[0]
            return url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Get sync database URL (for Alembic). Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            elif url.startswith("postgresql+asyncpg://"):
                url = url.replace("postgresql+asyncpg://", "postgresql://", 1)
            elif url.startswith("sqlite+aiosqlite://"):
                url = url.replace("sqlite+aiosqlite://", "sqlite://", 1)
            return url
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # LLM providers
    # Keys are optional so the app boots without them; calls fail with an authentication error
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    default_openai_model: str = "gpt-5"
    default_anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = 1024
    llm_timeout_seconds: float = 60.0
    llm_max_attempts: int = 3
    llm_retry_base_delay: float = 1.0

    # Study tools
    generation_model: str = "gpt-5"
    mastery_step: int = 10

    # When True, adding a message moves its conversation to the top of the list
    touch_conversation_on_message: bool = False

    # Uploads
    upload_dir: str = "uploads"
    max_upload_size_bytes: int = 10 * 1024 * 1024  # 10MB

    # Simulated video generation
    video_generation_delay_seconds: float = 5.0
    video_base_url: str = "https://example.com"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(
    error: Exception,
    *,
    environment: str,
    generic_message: str = "An internal error occurred.",
) -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    if environment == "development":
        return str(error)
    return generic_message
