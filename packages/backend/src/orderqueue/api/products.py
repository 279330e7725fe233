"""Product API routes.

Routes just translate HTTP to QueueService calls and map its errors:
ValidationError → 400, StorageError → 500.
"""

from fastapi import APIRouter, Depends, HTTPException

from orderqueue.api.dependencies import get_queue_service
from orderqueue.schemas.product import Product, ProductCreate
from orderqueue.schemas.queue import DeleteResult
from orderqueue.services.queue_service import QueueService, ValidationError
from orderqueue.storage.base import StorageError

router = APIRouter()


@router.get("/products", response_model=list[Product])
async def list_products(svc: QueueService = Depends(get_queue_service)):
    return await svc.get_products()


@router.post("/products", response_model=Product, status_code=201)
async def create_product(
    body: ProductCreate,
    svc: QueueService = Depends(get_queue_service),
):
    """Create a product. Sizes and colors may be lists or comma-separated."""
    try:
        return await svc.add_product(body.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save product: {e}")


@router.delete("/products/{product_id}", response_model=DeleteResult)
async def delete_product(
    product_id: str,
    svc: QueueService = Depends(get_queue_service),
):
    try:
        deleted = await svc.delete_product(product_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete product: {e}")
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    return DeleteResult(success=True)
