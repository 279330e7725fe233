"""WebSocket endpoint — live queue updates for viewer screens.

Learn: Each screen connects to /ws. The handler:
1. Accepts and registers the connection with the Broadcaster
2. Immediately sends the full queue snapshot (catch-up on (re)connect)
3. Reads client frames until disconnect, answering pings and ignoring
   binary or non-JSON frames
4. Unregisters on the way out

Everything the screen sees after step 2 arrives via Broadcaster.publish.
"""

import json

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from orderqueue.api.dependencies import get_queue_service
from orderqueue.services.queue_service import QueueService

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def queue_websocket(
    websocket: WebSocket,
    svc: QueueService = Depends(get_queue_service),
):
    await websocket.accept()
    broadcaster = svc.broadcaster
    broadcaster.connect(websocket)
    try:
        await broadcaster.send_snapshot(websocket, await svc.snapshot())
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            data = message.get("text")
            if data is None:
                continue  # binary frame
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
