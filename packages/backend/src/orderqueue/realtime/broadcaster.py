"""In-process broadcaster — fan out queue events to every live screen.

Learn: Delivery is fire-and-forget, at most once per listener. There's
no ack, retry or buffering: if a send fails the listener is dropped and
the screen catches up with a snapshot when it reconnects. A slow or dead
screen can never make a queue write fail.

Listeners are anything with `async send_json(data)` — a Starlette
WebSocket in production, a small fake in tests.
"""

from typing import Any, Protocol

import structlog

from orderqueue.events.types import QUEUE_UPDATED

logger = structlog.get_logger()


class Listener(Protocol):
    async def send_json(self, data: Any) -> None: ...


def envelope(event_type: str, data: Any) -> dict[str, Any]:
    return {"type": event_type, "data": data}


class Broadcaster:
    """Registry of live listeners plus best-effort fan-out."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    @property
    def connection_count(self) -> int:
        return len(self._listeners)

    def connect(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)
            logger.info("realtime.connected", connections=len(self._listeners))

    def disconnect(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
            logger.info("realtime.disconnected", connections=len(self._listeners))

    async def _send(self, listener: Listener, message: dict[str, Any]) -> bool:
        try:
            await listener.send_json(message)
            return True
        except Exception as e:
            logger.warning("realtime.send_failed", event_type=message["type"], error=str(e))
            self.disconnect(listener)
            return False

    async def publish(self, event_type: str, data: Any) -> int:
        """Send one event to every listener. Returns how many received it."""
        message = envelope(event_type, data)
        delivered = 0
        # Copy: a failed send mutates the listener list
        for listener in list(self._listeners):
            if await self._send(listener, message):
                delivered += 1
        return delivered

    async def send_snapshot(self, listener: Listener, snapshot: list[Any]) -> bool:
        """Catch-up for one listener: the whole current queue."""
        return await self._send(listener, envelope(QUEUE_UPDATED, snapshot))
