"""Health check endpoint.

Reports which storage backend and retention policy are actually active —
after a document store fallback these differ from the configuration.
"""

from fastapi import APIRouter, Depends

from orderqueue import __version__
from orderqueue.api.dependencies import get_queue_service
from orderqueue.services.queue_service import QueueService

router = APIRouter()


@router.get("/health")
async def health_check(svc: QueueService = Depends(get_queue_service)):
    return {
        "status": "healthy",
        "server": "ok",
        "version": __version__,
        "storage": svc.backend.name,
        "retention": svc.retention.name,
        "connections": svc.broadcaster.connection_count,
    }
