"""Task event bus bridging store mutations to UI listeners"""
import logging
import threading
from typing import Any, Callable, Dict, List

_logger = logging.getLogger("fetchforge")

TASK_UPDATE = "task-update"
TASK_DELETE = "task-delete"

Listener = Callable[[str, Dict[str, Any]], None]


class EventBus:
    """Fan-out of events to subscribed listeners, called on the emitting thread."""

    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, payload)
            except Exception:
                _logger.exception("Event listener failed event=%s", event)

    def emit_task(self, task) -> None:
        self.emit(TASK_UPDATE, task.to_record())

    def emit_deleted(self, task_id: str) -> None:
        self.emit(TASK_DELETE, {"id": task_id})
