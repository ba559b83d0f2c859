"""Simulated video generation.

No real provider is called: a background task waits a fixed delay and then
fills in placeholder output URLs. The observable contract is what a real
integration must keep: create returns ``pending``; a later fetch sees
``completed`` with both URLs and a completion timestamp.
"""

import asyncio
import logging

from nexusai.schemas.videos import VideoStatus
from nexusai.storage.base import RecordNotFoundError, Storage, utcnow

logger = logging.getLogger(__name__)


class VideoGenerator:
    """Schedules and tracks simulated generation jobs."""

    def __init__(self, storage: Storage, *, delay_seconds: float, base_url: str):
        self.storage = storage
        self.delay_seconds = delay_seconds
        self.base_url = base_url.rstrip("/")
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, video_id: str) -> asyncio.Task:
        """Start the job for ``video_id`` in the background."""
        task = asyncio.create_task(self._run(video_id), name=f"video-generation-{video_id}")
        # Hold a reference until done so the task is not garbage collected
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, video_id: str) -> None:
        try:
            await self.storage.update_video_generation(video_id, {"status": VideoStatus.PROCESSING})
            await asyncio.sleep(self.delay_seconds)
            await self.storage.update_video_generation(
                video_id,
                {
                    "status": VideoStatus.COMPLETED,
                    "video_url": f"{self.base_url}/videos/{video_id}.mp4",
                    "thumbnail_url": f"{self.base_url}/thumbnails/{video_id}.jpg",
                    "completed_at": utcnow(),
                },
            )
            logger.info("Video generation %s completed", video_id)
        except RecordNotFoundError:
            logger.info("Video generation %s was deleted before completion", video_id)
        except Exception:
            logger.exception("Failed to update video generation %s", video_id)
            try:
                await self.storage.update_video_generation(video_id, {"status": VideoStatus.FAILED})
            except RecordNotFoundError:
                pass

    async def shutdown(self) -> None:
        """Cancel jobs still in flight."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
