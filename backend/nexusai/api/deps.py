"""
FastAPI dependencies.

Key patterns:
1. Collaborators (store, provider service, video jobs) live on ``app.state``
   and are handed to handlers through Depends, so tests swap them with
   ``app.dependency_overrides`` or by building the app with fakes.
2. get_current_user: resolves the acting user; every list is scoped to it.
3. Dependencies take HTTPConnection so the same ones serve WebSocket routes.
"""

from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, status
from starlette.requests import HTTPConnection

from nexusai.config import Settings
from nexusai.schemas import User
from nexusai.services.providers import LLMService, ModelRegistry
from nexusai.services.study_generator import StudyGenerator
from nexusai.services.video_generator import VideoGenerator
from nexusai.storage.base import Storage

T = TypeVar("T")


# =============================================================================
# COLLABORATORS
# =============================================================================


def get_app_settings(connection: HTTPConnection) -> Settings:
    return connection.app.state.settings


def get_storage(connection: HTTPConnection) -> Storage:
    return connection.app.state.storage


def get_llm_service(connection: HTTPConnection) -> LLMService:
    return connection.app.state.llm_service


def get_video_generator(connection: HTTPConnection) -> VideoGenerator:
    return connection.app.state.video_generator


def get_model_registry(llm: Annotated[LLMService, Depends(get_llm_service)]) -> ModelRegistry:
    return llm.registry


def get_study_generator(
    llm: Annotated[LLMService, Depends(get_llm_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> StudyGenerator:
    return StudyGenerator(llm, settings.generation_model)


AppSettings = Annotated[Settings, Depends(get_app_settings)]
StorageDep = Annotated[Storage, Depends(get_storage)]
LLMDep = Annotated[LLMService, Depends(get_llm_service)]
GeneratorDep = Annotated[StudyGenerator, Depends(get_study_generator)]
VideoGeneratorDep = Annotated[VideoGenerator, Depends(get_video_generator)]
RegistryDep = Annotated[ModelRegistry, Depends(get_model_registry)]


# =============================================================================
# CURRENT USER
# =============================================================================


async def get_current_user(storage: StorageDep, settings: AppSettings) -> User:
    """
    Return the acting user.

    There is no login yet: every request acts as the configured default
    (demo) user. Raises 401 if that user is missing from the store.
    """
    user = await storage.get_user(settings.default_user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


# =============================================================================
# OWNERSHIP HELPERS
# =============================================================================


def owned_or_404(resource: T | None, current_user: User, entity: str) -> T:
    """
    Combined check: resource exists AND user owns it.

    Returns 404 for both cases so foreign records stay invisible:

        note = owned_or_404(await storage.get_note(note_id), user, "Note")
    """
    if resource is None or getattr(resource, "user_id", None) != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")
    return resource


def update_failed(entity: str) -> HTTPException:
    """Absent update targets are reported as a plain 400."""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Failed to update {entity.lower()}",
    )
