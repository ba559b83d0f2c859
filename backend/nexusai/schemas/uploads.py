"""Upload schemas."""

from nexusai.schemas.base import BaseSchema


class UploadedFile(BaseSchema):
    """Metadata of a stored upload."""

    id: str  # assigned storage name
    original_name: str
    mime_type: str | None
    size: int
    path: str
