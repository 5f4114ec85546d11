"""
WebSocket connection manager.

Relays task events from worker threads to connected UI clients.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

from fetchforge.events import TASK_DELETE

_logger = logging.getLogger("fetchforge")


class ConnectionManager:
    """Tracks WebSocket clients and broadcasts event messages to them."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        _logger.info("Event client connected total=%d", len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        _logger.info("Event client disconnected total=%d", len(self.active_connections))

    async def broadcast(self, message: Dict[str, Any]) -> None:
        dead_connections = []
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception as exc:
                _logger.warning("Error broadcasting to client error=%s", exc)
                dead_connections.append(connection)
        for connection in dead_connections:
            self.disconnect(connection)

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        """EventBus listener; safe to call from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed() or not self.active_connections:
            return
        if event == TASK_DELETE:
            message = {"type": event, "id": payload.get("id")}
        else:
            message = {"type": event, "task": payload}
        asyncio.run_coroutine_threadsafe(self.broadcast(message), loop)
