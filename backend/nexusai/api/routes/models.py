"""Chat model listing for the model picker."""

from fastapi import APIRouter

from nexusai.api.deps import RegistryDep
from nexusai.schemas.models import ModelInfo

router = APIRouter(prefix="/models", tags=["models"])


@router.get("", response_model=list[ModelInfo])
async def list_models(registry: RegistryDep) -> list[ModelInfo]:
    """List the known chat models. ``provider`` names the vendor."""
    return [
        ModelInfo(
            id=spec.id,
            name=spec.name,
            provider=spec.vendor,
            description=spec.description,
            max_tokens=spec.max_tokens,
            supports_images=spec.supports_images,
            supports_files=spec.supports_files,
        )
        for spec in registry.list_models()
    ]
