"""File upload route. Files are stored on local disk and never processed."""

import logging
import os

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from nexusai.api.deps import AppSettings, CurrentUser
from nexusai.schemas.uploads import UploadedFile
from nexusai.storage.base import new_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])

CHUNK_SIZE = 64 * 1024


@router.post("/upload", response_model=UploadedFile)
async def upload_file(
    current_user: CurrentUser,
    settings: AppSettings,
    file: UploadFile | None = File(None),
) -> UploadedFile:
    """
    Store one multipart ``file`` under the upload directory.

    Files over the configured ceiling are rejected with 413 and nothing is kept.
    """
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    os.makedirs(settings.upload_dir, exist_ok=True)
    stored_name = new_id().replace("-", "")
    path = os.path.join(settings.upload_dir, stored_name)

    size = 0
    out = await run_in_threadpool(open, path, "wb")
    try:
        while chunk := await file.read(CHUNK_SIZE):
            size += len(chunk)
            if size > settings.max_upload_size_bytes:
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail="File too large",
                )
            await run_in_threadpool(out.write, chunk)
    except BaseException:
        # No partial file survives a rejected or interrupted upload
        out.close()
        os.remove(path)
        logger.warning("Discarded upload %r after %d bytes", file.filename, size)
        raise
    else:
        await run_in_threadpool(out.close)
    finally:
        await file.close()

    logger.info("Stored upload %r as %s (%d bytes)", file.filename, stored_name, size)
    return UploadedFile(
        id=stored_name,
        original_name=file.filename or stored_name,
        mime_type=file.content_type,
        size=size,
        path=path,
    )
