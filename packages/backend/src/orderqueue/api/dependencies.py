"""FastAPI dependencies shared by the REST routes and the WebSocket.

Learn: The QueueService is built once in the app lifespan and parked on
app.state. Routes get it through this dependency instead of importing a
global, which also makes it easy to swap in tests via dependency_overrides.
HTTPConnection covers both HTTP requests and WebSockets.
"""

from starlette.requests import HTTPConnection

from orderqueue.services.queue_service import QueueService


def get_queue_service(conn: HTTPConnection) -> QueueService:
    service = getattr(conn.app.state, "queue_service", None)
    if service is None:
        raise RuntimeError("QueueService not initialized. Is the app lifespan running?")
    return service
