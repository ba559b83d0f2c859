"""
NexusAI FastAPI Application Entry Point.

Run with: uvicorn nexusai.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nexusai.api.errors import register_exception_handlers
from nexusai.api.routes import (
    chat,
    flashcards,
    models,
    notes,
    quizzes,
    uploads,
    users,
    videos,
)
from nexusai.config import Settings, get_settings
from nexusai.services.providers import LLMService
from nexusai.services.video_generator import VideoGenerator
from nexusai.storage import Storage, create_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    await app.state.storage.init()
    logger.info("%s started with %s storage", app.state.settings.app_name, app.state.settings.storage_backend)
    yield
    # Shutdown
    await app.state.video_generator.shutdown()
    await app.state.storage.close()


def create_app(
    settings: Settings | None = None,
    *,
    storage: Storage | None = None,
    llm_service: LLMService | None = None,
) -> FastAPI:
    """Build the application. Collaborators default to the ones the settings describe."""
    settings = settings or get_settings()
    storage = storage or create_storage(settings)

    app = FastAPI(
        title=settings.app_name,
        description="AI chat and study tools API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.llm_service = llm_service or LLMService(settings)
    app.state.video_generator = VideoGenerator(
        storage,
        delay_seconds=settings.video_generation_delay_seconds,
        base_url=settings.video_base_url,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(users.router, prefix="/api")
    app.include_router(models.router, prefix="/api")
    app.include_router(chat.router, prefix="/api")
    app.include_router(chat.messages_router, prefix="/api")
    app.include_router(flashcards.sets_router, prefix="/api")
    app.include_router(flashcards.router, prefix="/api")
    app.include_router(notes.router, prefix="/api")
    app.include_router(quizzes.router, prefix="/api")
    app.include_router(quizzes.attempts_router, prefix="/api")
    app.include_router(videos.router, prefix="/api")
    app.include_router(uploads.router, prefix="/api")
    app.include_router(chat.socket_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
