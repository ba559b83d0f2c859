"""Model registry schemas."""

from nexusai.schemas.base import BaseSchema


class ModelInfo(BaseSchema):
    """A chat model the relay knows about."""

    id: str
    name: str
    provider: str
    description: str
    max_tokens: int
    supports_images: bool
    supports_files: bool
