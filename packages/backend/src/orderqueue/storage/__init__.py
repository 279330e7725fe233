"""Persistence backends — JSON files or a document store, picked at startup.

Learn: create_backend() is called exactly once, from the app lifespan.
The result is handed to QueueService by reference; nothing else in the
app reaches for storage on its own.
"""

from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from orderqueue.config import Settings
from orderqueue.storage.base import Clock, StorageBackend, StorageError, utcnow
from orderqueue.storage.document import DocumentStoreBackend
from orderqueue.storage.json_file import JsonFileBackend

logger = structlog.get_logger()

__all__ = [
    "DocumentStoreBackend",
    "JsonFileBackend",
    "StorageBackend",
    "StorageError",
    "create_backend",
    "utcnow",
]


async def create_backend(
    settings: Settings, clock: Optional[Clock] = None
) -> StorageBackend:
    """Build and initialize the configured backend.

    If the document store is selected but can't be reached, fall back to
    JSON files for the rest of the process. There is no retry.
    """
    if settings.use_document_store:
        try:
            backend = DocumentStoreBackend(
                settings.database_url, clock=clock, echo=settings.debug
            )
        except (SQLAlchemyError, ImportError) as e:
            logger.warning("storage.document_store_unavailable", error=str(e))
        else:
            try:
                await backend.initialize()
                return backend
            except StorageError as e:
                logger.warning("storage.document_store_unavailable", error=str(e))
                await backend.close()
        logger.warning("storage.fallback_to_json", data_dir=str(settings.data_dir))

    backend = JsonFileBackend(settings.data_dir, clock=clock)
    await backend.initialize()
    return backend
