"""Services for external integrations."""

from nexusai.services.chat_relay import ChatRelay, RelayOutcome
from nexusai.services.providers import LLMService, ModelRegistry, Provider, ProviderError
from nexusai.services.study_generator import StudyGenerator
from nexusai.services.video_generator import VideoGenerator

__all__ = [
    "ChatRelay",
    "LLMService",
    "ModelRegistry",
    "Provider",
    "ProviderError",
    "RelayOutcome",
    "StudyGenerator",
    "VideoGenerator",
]
