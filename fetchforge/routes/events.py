"""Task event stream"""
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()
_logger = logging.getLogger("fetchforge")


@router.websocket("/ws")
async def task_events(websocket: WebSocket):
    """Push a message for every task update; answers ping with pong."""
    connections = websocket.app.state.connections
    await connections.connect(websocket)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                _logger.info("Ignoring malformed event client message")
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(websocket)
