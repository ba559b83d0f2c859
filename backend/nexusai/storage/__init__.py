"""Record store implementations."""

from nexusai.storage.base import RecordNotFoundError, Storage
from nexusai.storage.memory import MemoryStorage

__all__ = ["MemoryStorage", "RecordNotFoundError", "Storage", "create_storage"]


def create_storage(settings) -> Storage:
    """Build the store selected by ``settings.storage_backend``."""
    if settings.storage_backend == "sql":
        # Imported lazily so demo mode needs no database driver
        from nexusai.db.session import build_session_factory
        from nexusai.storage.sql import SqlStorage

        return SqlStorage(
            build_session_factory(settings.database_url, echo=settings.debug),
            default_user_id=settings.default_user_id,
        )
    return MemoryStorage(default_user_id=settings.default_user_id)
