"""Fixed-size worker pool draining a bounded FIFO of task ids"""
import logging
import queue
import threading
from typing import Callable, List, Optional

from fetchforge.exceptions import QueueFull

_logger = logging.getLogger("fetchforge")

_STOP = None


class WorkerPool:
    """
    ``size`` threads, each taking one task id at a time and running
    ``handler`` to completion before taking the next.
    """

    def __init__(
        self,
        handler: Callable[[str], None],
        size: int = 3,
        queue_size: int = 100,
        name: str = "fetchforge-worker",
    ):
        self._handler = handler
        self.size = size
        self.name = name
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=queue_size)
        self._threads: List[threading.Thread] = []
        self._stopping = threading.Event()
        self._active = 0
        self._active_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    @property
    def active_count(self) -> int:
        with self._active_lock:
            return self._active

    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._threads:
            return
        self._stopping.clear()
        self._drop_stop_markers()
        for index in range(self.size):
            thread = threading.Thread(target=self._work, name=f"{self.name}-{index + 1}", daemon=True)
            thread.start()
            self._threads.append(thread)
        _logger.info("Worker pool started size=%d", self.size)

    def _drop_stop_markers(self) -> None:
        # Workers busy during stop() exit without taking their marker.
        kept = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
            if item is not _STOP:
                kept.append(item)
        for item in kept:
            self._queue.put_nowait(item)

    def enqueue(self, task_id: str) -> None:
        """Add without blocking; a full queue raises QueueFull instead of stalling the caller."""
        try:
            self._queue.put_nowait(task_id)
        except queue.Full:
            _logger.warning("Task queue full task_id=%s capacity=%d", task_id, self._queue.maxsize)
            raise QueueFull(f"Download queue is full ({self._queue.maxsize} pending)") from None
        _logger.debug("Enqueued task task_id=%s pending=%d", task_id, self._queue.qsize())

    def join(self) -> None:
        """Block until every enqueued id has been processed."""
        self._queue.join()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Let running handlers finish, then end the worker threads."""
        self._stopping.set()
        for _ in self._threads:
            try:
                self._queue.put(_STOP, timeout=1)
            except queue.Full:
                break
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        _logger.info("Worker pool stopped")

    def _work(self) -> None:
        while not self._stopping.is_set():
            task_id = self._queue.get()
            try:
                if task_id is _STOP:
                    return
                with self._active_lock:
                    self._active += 1
                try:
                    self._handler(task_id)
                except Exception:
                    _logger.exception("Worker handler failed task_id=%s", task_id)
                finally:
                    with self._active_lock:
                        self._active -= 1
            finally:
                self._queue.task_done()
