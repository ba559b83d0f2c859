"""Video generation lifecycle and file uploads."""

import asyncio
import os

import pytest
from httpx import AsyncClient

from nexusai.api.routes import uploads
from nexusai.schemas import VideoGenerationCreate, VideoStatus
from nexusai.services.video_generator import VideoGenerator

VIDEO_BODY = {"prompt": "A fox in the snow", "duration": 5, "style": "cinematic", "aspectRatio": "16:9"}


# =============================================================================
# VIDEOS
# =============================================================================


async def test_video_generation_completes_in_background(client: AsyncClient, settings):
    response = await client.post("/api/video-generations", json=VIDEO_BODY)

    assert response.status_code == 200
    video = response.json()
    assert video["status"] == "pending"
    assert video["videoUrl"] is None
    assert video["aspectRatio"] == "16:9"

    await asyncio.sleep(settings.video_generation_delay_seconds + 0.2)

    done = (await client.get(f"/api/video-generations/{video['id']}")).json()
    assert done["status"] == "completed"
    assert done["videoUrl"] == f"https://example.com/videos/{video['id']}.mp4"
    assert done["thumbnailUrl"] == f"https://example.com/thumbnails/{video['id']}.jpg"
    assert done["completedAt"] is not None


async def test_video_listing_newest_first(client: AsyncClient):
    first = (await client.post("/api/video-generations", json=VIDEO_BODY)).json()
    second = (await client.post("/api/video-generations", json={**VIDEO_BODY, "prompt": "A second fox"})).json()

    ids = {v["id"] for v in (await client.get("/api/video-generations")).json()}
    assert ids == {first["id"], second["id"]}


async def test_video_requires_positive_duration(client: AsyncClient):
    response = await client.post("/api/video-generations", json={**VIDEO_BODY, "duration": 0})
    assert response.status_code == 400


async def test_null_video_prompt_is_rejected(client: AsyncClient):
    video = (await client.post("/api/video-generations", json=VIDEO_BODY)).json()

    response = await client.put(f"/api/video-generations/{video['id']}", json={"prompt": None})

    assert response.status_code == 400
    assert response.json() == {"message": "Invalid request data"}
    assert (await client.get(f"/api/video-generations/{video['id']}")).json()["prompt"] == VIDEO_BODY["prompt"]


async def test_absent_video_is_404(client: AsyncClient):
    response = await client.get("/api/video-generations/missing")
    assert response.json() == {"message": "Video generation not found"}


async def test_job_for_deleted_video_exits_quietly(storage):
    generator = VideoGenerator(storage, delay_seconds=0.01, base_url="https://cdn.test/")
    video = await storage.create_video_generation(
        "default-user",
        VideoGenerationCreate(prompt="gone", duration=1, style="s", aspect_ratio="1:1"),
    )

    task = generator.schedule(video.id)
    await storage.delete_video_generation(video.id)
    await task

    assert await storage.get_video_generation(video.id) is None


async def test_job_uses_configured_base_url(storage):
    generator = VideoGenerator(storage, delay_seconds=0, base_url="https://cdn.test/")
    video = await storage.create_video_generation(
        "default-user",
        VideoGenerationCreate(prompt="p", duration=1, style="s", aspect_ratio="1:1"),
    )

    await generator.schedule(video.id)

    done = await storage.get_video_generation(video.id)
    assert done.status is VideoStatus.COMPLETED
    assert done.video_url == f"https://cdn.test/videos/{video.id}.mp4"


async def test_shutdown_cancels_pending_jobs(storage):
    generator = VideoGenerator(storage, delay_seconds=60, base_url="https://cdn.test")
    video = await storage.create_video_generation(
        "default-user",
        VideoGenerationCreate(prompt="p", duration=1, style="s", aspect_ratio="1:1"),
    )
    task = generator.schedule(video.id)
    await asyncio.sleep(0)

    await generator.shutdown()

    assert task.cancelled()
    assert (await storage.get_video_generation(video.id)).status is not VideoStatus.COMPLETED


# =============================================================================
# UPLOADS
# =============================================================================


async def test_upload_stores_file(client: AsyncClient, settings):
    response = await client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"hello world", "text/plain")},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["originalName"] == "notes.txt"
    assert body["mimeType"] == "text/plain"
    assert body["size"] == 11
    assert os.path.dirname(body["path"]) == settings.upload_dir
    with open(body["path"], "rb") as f:
        assert f.read() == b"hello world"


async def test_upload_without_file_is_400(client: AsyncClient):
    response = await client.post("/api/upload", data={"other": "field"})

    assert response.status_code == 400
    assert response.json() == {"message": "No file uploaded"}


async def test_upload_over_limit_is_413(client: AsyncClient, settings):
    payload = b"x" * (settings.max_upload_size_bytes + 1)

    response = await client.post("/api/upload", files={"file": ("big.bin", payload, "application/octet-stream")})

    assert response.status_code == 413
    assert os.listdir(settings.upload_dir) == []


async def test_failed_write_leaves_no_partial_file(client: AsyncClient, settings, monkeypatch):
    async def write_fails(func, *args, **kwargs):
        if func.__name__ == "write":
            raise OSError("No space left on device")
        return func(*args, **kwargs)

    monkeypatch.setattr(uploads, "run_in_threadpool", write_fails)

    with pytest.raises(OSError):
        await client.post("/api/upload", files={"file": ("notes.txt", b"hello", "text/plain")})

    assert os.listdir(settings.upload_dir) == []
