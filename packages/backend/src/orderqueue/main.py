"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The lifespan builds the one StorageBackend, the Broadcaster and
the QueueService at startup and tears the backend down at shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderqueue import __version__
from orderqueue.api import api_router
from orderqueue.config import Settings, settings as default_settings
from orderqueue.realtime.broadcaster import Broadcaster
from orderqueue.realtime.websocket import router as ws_router
from orderqueue.services.queue_service import QueueService
from orderqueue.services.retention import build_policy
from orderqueue.storage import create_backend

logger = structlog.get_logger()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle.

        Anything before `yield` runs at startup, after `yield` at shutdown.
        """
        logger.info(
            "orderqueue.starting",
            version=__version__,
            environment=settings.environment,
            port=settings.port,
        )

        backend = await create_backend(settings)
        retention = build_policy(
            settings.retention_policy or backend.default_retention,
            settings.retention_hours,
        )
        app.state.queue_service = QueueService(
            backend, retention=retention, broadcaster=Broadcaster()
        )
        logger.info("orderqueue.storage", backend=backend.name, retention=retention.name)

        yield

        logger.info("orderqueue.shutdown")
        await backend.close()

    app = FastAPI(
        title="Order Queue",
        description="Shared order queue with live updates for viewer screens",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: orderqueue.main:app)
app = create_app()
