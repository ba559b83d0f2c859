"""Video generation routes."""

import logging

from fastapi import APIRouter
from pydantic import ValidationError

from nexusai.api.deps import CurrentUser, StorageDep, VideoGeneratorDep, owned_or_404, update_failed
from nexusai.schemas.base import MessageResponse
from nexusai.schemas.videos import VideoGeneration, VideoGenerationCreate, VideoGenerationUpdate
from nexusai.storage.base import RecordNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/video-generations", tags=["videos"])


@router.get("", response_model=list[VideoGeneration])
async def list_video_generations(current_user: CurrentUser, storage: StorageDep) -> list[VideoGeneration]:
    """List video generations, newest first."""
    return await storage.list_video_generations(current_user.id)


@router.post("", response_model=VideoGeneration)
async def create_video_generation(
    data: VideoGenerationCreate,
    current_user: CurrentUser,
    storage: StorageDep,
    videos: VideoGeneratorDep,
) -> VideoGeneration:
    """
    Request a video.

    Returns the pending record straight away; completion happens in the
    background and is observed by fetching the record again.
    """
    video = await storage.create_video_generation(current_user.id, data)
    videos.schedule(video.id)
    logger.info("Scheduled video generation %s", video.id)
    return video


@router.get("/{video_id}", response_model=VideoGeneration)
async def get_video_generation(video_id: str, current_user: CurrentUser, storage: StorageDep) -> VideoGeneration:
    return owned_or_404(await storage.get_video_generation(video_id), current_user, "Video generation")


@router.put("/{video_id}", response_model=VideoGeneration)
async def update_video_generation(
    video_id: str,
    data: VideoGenerationUpdate,
    current_user: CurrentUser,
    storage: StorageDep,
) -> VideoGeneration:
    video = await storage.get_video_generation(video_id)
    if video is None or video.user_id != current_user.id:
        raise update_failed("Video generation")
    try:
        return await storage.update_video_generation(video_id, data.model_dump(exclude_unset=True))
    except (RecordNotFoundError, ValidationError):
        raise update_failed("Video generation")


@router.delete("/{video_id}", response_model=MessageResponse)
async def delete_video_generation(
    video_id: str,
    current_user: CurrentUser,
    storage: StorageDep,
) -> MessageResponse:
    """Delete a video generation. A job still running for it stops quietly."""
    video = await storage.get_video_generation(video_id)
    if video is not None:
        owned_or_404(video, current_user, "Video generation")
        await storage.delete_video_generation(video_id)
    return MessageResponse(message="Video generation deleted")
