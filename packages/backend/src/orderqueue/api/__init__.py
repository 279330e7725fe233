"""API route aggregation.

All routers registered here get mounted in main.py under /api.
There is no auth layer: the app runs on a trusted shop network.
"""

from fastapi import APIRouter

from orderqueue.api.health import router as health_router
from orderqueue.api.products import router as products_router
from orderqueue.api.queue import router as queue_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(products_router, tags=["products"])
api_router.include_router(queue_router, tags=["queue"])
