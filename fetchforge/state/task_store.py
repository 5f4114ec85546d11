"""Task registry: tasks by id plus creation order, guarded by one lock"""
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from fetchforge.events import EventBus
from fetchforge.exceptions import TaskNotFound
from fetchforge.utils import default_title_from_url, source_host_from_url

from .models import Stage, Task, TaskStatus, now
from .persistence import JsonFile

_logger = logging.getLogger("fetchforge")

Mutator = Callable[[Task], Optional[bool]]


def new_task_id() -> str:
    return uuid.uuid4().hex


class TaskStore:
    """
    Authoritative in-memory task registry.

    Every mutation is: take the lock, mutate, copy, release, then emit and
    persist. The lock is never held across file I/O or event emission.
    Callers only ever receive copies.
    """

    def __init__(
        self,
        snapshot_file: Optional[JsonFile] = None,
        events: Optional[EventBus] = None,
        clock: Callable = now,
    ):
        self._lock = threading.Lock()
        # Serializes snapshot writes so the newest snapshot always lands last.
        self._persist_lock = threading.Lock()
        self._tasks: Dict[str, Task] = {}
        self._order: List[str] = []
        self._snapshot_file = snapshot_file
        self._events = events or EventBus()
        self._clock = clock

    @property
    def events(self) -> EventBus:
        return self._events

    def _touch(self, task: Task) -> None:
        stamp = self._clock()
        # updated_at never moves backwards, even if the wall clock does
        if stamp < task.updated_at:
            stamp = task.updated_at
        task.updated_at = stamp

    def _snapshot_locked(self) -> List[Task]:
        return [self._tasks[task_id].model_copy() for task_id in self._order if task_id in self._tasks]

    # ----------------------------
    # Persistence
    # ----------------------------

    def load(self) -> int:
        """Restore tasks and order from the snapshot file; absent or malformed means empty."""
        if self._snapshot_file is None:
            return 0
        data = self._snapshot_file.load()
        if data is None:
            return 0
        if not isinstance(data, list):
            _logger.warning("Ignoring task snapshot that is not a list path=%s", self._snapshot_file.path)
            return 0
        try:
            tasks = [Task.model_validate(item) for item in data]
        except ValidationError:
            _logger.warning("Ignoring malformed task snapshot path=%s", self._snapshot_file.path, exc_info=True)
            return 0

        with self._lock:
            self._tasks = {}
            self._order = []
            for task in tasks:
                if not task.id:
                    continue
                if task.id not in self._tasks:
                    self._order.append(task.id)
                self._tasks[task.id] = task
            count = len(self._order)
        _logger.info("Loaded tasks from snapshot count=%d path=%s", count, self._snapshot_file.path)
        return count

    def persist(self) -> None:
        """Best-effort snapshot write; failures are logged by the file layer."""
        if self._snapshot_file is None:
            return
        with self._persist_lock:
            records = [task.to_record() for task in self.list()]
            self._snapshot_file.save(records)

    def _publish(self, tasks: Sequence[Task], persist: bool = True) -> None:
        for task in tasks:
            self._events.emit_task(task)
        if persist:
            self.persist()

    # ----------------------------
    # Queries
    # ----------------------------

    def list(self) -> List[Task]:
        with self._lock:
            return self._snapshot_locked()

    def get(self, task_id: str) -> Task:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFound(task_id)
            return task.model_copy()

    def __contains__(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    # ----------------------------
    # Mutations
    # ----------------------------

    def create(self, urls: Sequence[str]) -> List[Task]:
        """One Queued task per distinct locator, appended to order."""
        created: List[Task] = []
        seen = set()
        stamp = self._clock()
        with self._lock:
            for url in urls:
                if url in seen:
                    continue
                seen.add(url)
                task = Task(
                    id=new_task_id(),
                    url=url,
                    title=default_title_from_url(url),
                    source_host=source_host_from_url(url),
                    status=TaskStatus.queued,
                    stage=Stage.parse_url.value,
                    created_at=stamp,
                    updated_at=stamp,
                )
                self._tasks[task.id] = task
                self._order.append(task.id)
                created.append(task.model_copy())

        for task in created:
            _logger.info("Created task task_id=%s url=%s", task.id, task.url)
        self._publish(created)
        return created

    def update(self, task_id: str, mutate: Mutator, persist: bool = True) -> Optional[Task]:
        """
        Apply ``mutate`` to the live task under the lock.

        Returns the updated copy, or None when the task no longer exists or
        ``mutate`` returned False to signal that nothing changed.
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            if mutate(task) is False:
                return None
            self._touch(task)
            updated = task.model_copy()

        self._publish([updated], persist=persist)
        return updated

    def remove(self, task_id: str) -> Task:
        with self._lock:
            task = self._tasks.pop(task_id, None)
            if task is None:
                raise TaskNotFound(task_id)
            self._order = [existing for existing in self._order if existing != task_id]

        _logger.info("Deleted task task_id=%s", task_id)
        self._events.emit_deleted(task_id)
        self.persist()
        return task

    def merge(self, incoming: Sequence[Task]) -> Tuple[List[Task], List[str]]:
        """
        Merge records by id.

        An existing record is replaced only by a strictly newer one and keeps
        its original created_at. New ids are appended to order. Returns the
        full snapshot and the ids of newly inserted Queued records.
        """
        changed: List[Task] = []
        enqueue_ids: List[str] = []
        with self._lock:
            for item in incoming:
                existing = self._tasks.get(item.id)
                if existing is not None:
                    if item.updated_at > existing.updated_at:
                        replacement = item.model_copy(update={"created_at": existing.created_at})
                        self._tasks[item.id] = replacement
                        changed.append(replacement.model_copy())
                    continue
                inserted = item.model_copy()
                self._tasks[item.id] = inserted
                self._order.append(item.id)
                changed.append(inserted.model_copy())
                if inserted.status == TaskStatus.queued:
                    enqueue_ids.append(item.id)
            snapshot = self._snapshot_locked()

        _logger.info("Merged tasks incoming=%d changed=%d enqueue=%d", len(incoming), len(changed), len(enqueue_ids))
        self._publish(changed)
        return snapshot, enqueue_ids

    def replace(self, incoming: Sequence[Task]) -> Tuple[List[Task], List[str]]:
        """Discard everything and rebuild from ``incoming`` in its order."""
        with self._lock:
            self._tasks = {}
            self._order = []
            for item in incoming:
                if item.id not in self._tasks:
                    self._order.append(item.id)
                self._tasks[item.id] = item.model_copy()
            snapshot = self._snapshot_locked()
        enqueue_ids = [task.id for task in snapshot if task.status == TaskStatus.queued]

        _logger.info("Replaced tasks count=%d enqueue=%d", len(snapshot), len(enqueue_ids))
        self._publish(snapshot)
        return snapshot, enqueue_ids
