"""Queue API routes.

Learn: These routes are the HTTP face of QueueService. The service does
validation, persistence and broadcasting; routes only map its errors:
- ValidationError → 400 (bad or missing input, nothing written)
- NotFoundError   → 404
- StorageError    → 500 (a write failed)

GET /queue never fails on a storage problem — the service degrades to an
empty list and logs it.
"""

from fastapi import APIRouter, Depends, HTTPException

from orderqueue.api.dependencies import get_queue_service
from orderqueue.schemas.queue import (
    DeleteResult,
    FollowUpCreate,
    QueueItem,
    QueueItemCreate,
    StatusChange,
)
from orderqueue.services.queue_service import (
    NotFoundError,
    QueueService,
    ValidationError,
)
from orderqueue.storage.base import StorageError

router = APIRouter()


@router.get("/queue", response_model=list[QueueItem])
async def list_queue(svc: QueueService = Depends(get_queue_service)):
    """Current queue, with expired done items already filtered out."""
    return await svc.get_queue()


@router.post("/queue", response_model=QueueItem, status_code=201)
async def create_queue_item(
    body: QueueItemCreate,
    svc: QueueService = Depends(get_queue_service),
):
    """Add an order to the queue in 'pending' status."""
    try:
        return await svc.add_queue_item(body.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save queue item: {e}")


@router.put("/queue/{item_id}/status", response_model=QueueItem)
async def change_status(
    item_id: str,
    body: StatusChange,
    svc: QueueService = Depends(get_queue_service),
):
    """Set any status. There's no transition order to respect."""
    try:
        return await svc.update_queue_item_status(item_id, body.status)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to update queue item: {e}")


@router.post("/queue/{item_id}/follow-up", response_model=QueueItem)
async def add_follow_up(
    item_id: str,
    body: FollowUpCreate,
    svc: QueueService = Depends(get_queue_service),
):
    try:
        return await svc.add_follow_up(item_id, body.message)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to add follow-up: {e}")


@router.delete("/queue/{item_id}", response_model=DeleteResult)
async def delete_queue_item(
    item_id: str,
    svc: QueueService = Depends(get_queue_service),
):
    try:
        deleted = await svc.delete_queue_item(item_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete queue item: {e}")
    if not deleted:
        raise HTTPException(status_code=404, detail="Queue item not found")
    return DeleteResult(success=True)
