"""Task orchestration: submission, the run state machine, resume and import/export"""
import datetime
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional

from fetchforge.config import AppConfig, Profile, Settings, builtin_profiles, find_profile
from fetchforge.config.profiles import DEFAULT_PROFILE_ID
from fetchforge.events import EventBus
from fetchforge.exceptions import (
    AlreadyRunning,
    EngineFailure,
    FileMissing,
    OutputPending,
    PathNotFound,
    ProfileNotFound,
    QueueFull,
    TaskNotFound,
)
from fetchforge.state import FileStatus, JsonFile, ResumeStatus, Stage, Task, TaskStatus, TaskStore
from fetchforge.state.models import now
from fetchforge.state.persistence import atomic_write_text
from fetchforge.state.reconcile import (
    MERGE,
    Payload,
    export_text,
    parse_import_payload,
    prepare_imported,
    validate_mode,
)
from fetchforge.utils import extract_urls, output_missing

from .engine import Engine
from .files import move_to_trash, newest_file, open_with_default_app
from .heuristics import is_placeholder_title, resume_status, task_output_dir
from .metadata import MetadataResolver, apply_metadata
from .progress import apply_progress, parse_progress_line
from .worker_pool import WorkerPool

_logger = logging.getLogger("fetchforge")

QUEUE_FULL_MESSAGE = "Download queue is full; resume the task to try again"


class TaskManager:
    """
    Owns the task store, the worker pool and the engine, and exposes the
    operations the UI collaborator calls.
    """

    def __init__(
        self,
        settings: Settings,
        engine: Optional[Engine] = None,
        events: Optional[EventBus] = None,
        opener: Callable[[Path], None] = open_with_default_app,
        trasher: Callable[[Path], None] = move_to_trash,
        clock: Callable[[], datetime.datetime] = now,
    ):
        self.settings = settings
        self.events = events or EventBus()
        self.store = TaskStore(JsonFile(settings.tasks_file), self.events, clock)
        self.engine = engine or Engine.from_settings(settings)
        self.resolver = MetadataResolver(self.engine, timeout=settings.metadata_timeout)
        self.pool = WorkerPool(self.run_task, size=settings.max_workers, queue_size=settings.queue_size)
        # Fire-and-forget metadata prefetch, one job per created task.
        self._prefetch_executor = ThreadPoolExecutor(
            max_workers=settings.max_workers,
            thread_name_prefix="fetchforge-prefetch",
        )
        self._config_file = JsonFile(settings.config_file)
        self._config = AppConfig()
        self._config_lock = threading.Lock()
        self._opener = opener
        self._trasher = trasher
        self._clock = clock

    # ----------------------------
    # Lifecycle
    # ----------------------------

    def load(self) -> None:
        self.load_config()
        self.store.load()

    def start(self) -> None:
        self.load()
        self.pool.start()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self.pool.stop(timeout)
        self._prefetch_executor.shutdown(wait=False, cancel_futures=True)

    def output_dir_for(self, task: Task) -> Path:
        return task_output_dir(self.settings.download_dir, task.created_at)

    # ----------------------------
    # Submission and queries
    # ----------------------------

    def submit(self, text: str) -> List[Task]:
        """Create and enqueue one task per distinct http(s) locator in ``text``."""
        urls = extract_urls(text)
        if not urls:
            return []
        created = self.store.create(urls)
        for task in created:
            self._prefetch_executor.submit(self._prefetch_metadata, task.id, task.url)
        self._enqueue_all(task.id for task in created)
        return created

    def list_tasks(self) -> List[Task]:
        return self.store.list()

    def get_task(self, task_id: str) -> Task:
        return self.store.get(task_id)

    def delete_task(self, task_id: str) -> None:
        """Trash the produced file (if any) and then drop the record."""
        task = self.store.get(task_id)
        if task.output_path and Path(task.output_path).is_file():
            self._trasher(Path(task.output_path))
        self.store.remove(task_id)

    # ----------------------------
    # Files
    # ----------------------------

    def open_task_folder(self, task_id: str) -> Path:
        task = self.store.get(task_id)
        if task.output_path:
            folder = Path(task.output_path).parent
        else:
            folder = self.output_dir_for(task)
        if not folder.is_dir():
            raise PathNotFound(f"Output directory not found: {folder}")
        self._opener(folder)
        return folder

    def open_task_file(self, task_id: str) -> Path:
        task = self.store.get(task_id)
        if not task.output_path:
            raise OutputPending("Output file not available yet")
        path = Path(task.output_path)
        if not path.is_file():
            raise FileMissing(f"File not found: {path}")
        self._opener(path)
        return path

    def open_path(self, path: str) -> Path:
        """Open a directory, or the directory containing a file."""
        if not (path or "").strip():
            raise PathNotFound("Path is required")
        target = Path(path)
        if not target.exists():
            raise PathNotFound(f"Path not found: {path}")
        if not target.is_dir():
            target = target.parent
        self._opener(target)
        return target

    def file_status(self, task_id: str) -> FileStatus:
        task = self.store.get(task_id)
        if not task.output_path:
            return FileStatus.pending
        if output_missing(task.output_path):
            return FileStatus.missing
        return FileStatus.ok

    # ----------------------------
    # Resume
    # ----------------------------

    def resume_status(self, task_id: str) -> ResumeStatus:
        task = self.store.get(task_id)
        return resume_status(
            task,
            self.output_dir_for(task),
            at=self._clock(),
            grace_seconds=self.settings.running_grace_seconds,
            partial_window_seconds=self.settings.partial_window_seconds,
        )

    def resume(self, task_id: str, force: bool = False) -> Task:
        """
        Requeue a task so the engine continues its partial download.

        Without ``force``, a task a worker still appears to own is rejected.
        """
        stage = Stage.force_resume if force else Stage.resume

        def mark_queued(task: Task) -> None:
            if not force and task.is_actively_running(self._clock(), self.settings.running_grace_seconds):
                raise AlreadyRunning(f"Task {task_id} is already running")
            task.status = TaskStatus.queued
            task.stage = stage.value
            task.progress = ""
            task.error_message = ""
            task.resume = True

        updated = self.store.update(task_id, mark_queued)
        if updated is None:
            raise TaskNotFound(task_id)
        _logger.info("Resume requested task_id=%s force=%s", task_id, force)
        try:
            self.pool.enqueue(task_id)
        except QueueFull:
            self._fail(task_id, QUEUE_FULL_MESSAGE)
            raise
        return updated

    def force_resume(self, task_id: str) -> Task:
        return self.resume(task_id, force=True)

    # ----------------------------
    # Profiles and config
    # ----------------------------

    def load_config(self) -> None:
        data = self._config_file.load()
        if not isinstance(data, dict):
            return
        config = AppConfig.model_validate(data)
        if find_profile(config.active_profile_id) is None:
            _logger.warning("Ignoring unknown persisted profile profile_id=%s", config.active_profile_id)
            return
        with self._config_lock:
            self._config = config
        _logger.info("Loaded config active_profile_id=%s", config.active_profile_id)

    def save_config(self) -> None:
        with self._config_lock:
            data = self._config.model_dump(by_alias=True)
        self._config_file.save(data)

    def list_profiles(self) -> List[Profile]:
        return builtin_profiles()

    def get_active_profile(self) -> Profile:
        with self._config_lock:
            active_id = self._config.active_profile_id
        return find_profile(active_id) or find_profile(DEFAULT_PROFILE_ID)

    def set_active_profile(self, profile_id: str) -> Profile:
        profile = find_profile(profile_id)
        if profile is None:
            raise ProfileNotFound(profile_id)
        with self._config_lock:
            self._config = AppConfig(active_profile_id=profile.id)
        self.save_config()
        _logger.info("Active profile changed profile_id=%s", profile.id)
        return profile

    # ----------------------------
    # Import / export
    # ----------------------------

    def export_text(self) -> str:
        return export_text(self.store.list())

    def export_tasks(self) -> Path:
        """Write the ordered snapshot to the export directory and return its path."""
        path = self.settings.export_dir / f"fetchforge-tasks-{datetime.date.today().isoformat()}.json"
        atomic_write_text(path, self.export_text())
        _logger.info("Exported tasks path=%s", path)
        return path

    def import_tasks(self, payload: Payload, mode: str = MERGE, overwrite_downloaded: bool = False) -> List[Task]:
        mode = validate_mode(mode)
        incoming = prepare_imported(parse_import_payload(payload), overwrite_downloaded)
        if mode == MERGE:
            snapshot, enqueue_ids = self.store.merge(incoming)
        else:
            snapshot, enqueue_ids = self.store.replace(incoming)
        _logger.info("Imported tasks mode=%s count=%d enqueue=%d", mode, len(incoming), len(enqueue_ids))
        failed = self._enqueue_all(enqueue_ids)
        if failed:
            snapshot = self.store.list()
        return snapshot

    # ----------------------------
    # Queue
    # ----------------------------

    def _enqueue_all(self, task_ids) -> List[str]:
        """Enqueue each id; ids that do not fit are marked Failed and returned."""
        rejected = []
        for task_id in task_ids:
            try:
                self.pool.enqueue(task_id)
            except QueueFull:
                rejected.append(task_id)
                self._fail(task_id, QUEUE_FULL_MESSAGE)
        return rejected

    def _prefetch_metadata(self, task_id: str, url: str) -> None:
        # Races with the resolution at run start; the later write wins.
        try:
            metadata = self.resolver.resolve(url)
        except Exception:
            _logger.exception("Metadata prefetch failed task_id=%s", task_id)
            return
        if metadata is None:
            return
        self.store.update(task_id, lambda task: apply_metadata(task, metadata))
        _logger.debug("Metadata prefetched task_id=%s", task_id)

    # ----------------------------
    # Run state machine
    # ----------------------------

    def run_task(self, task_id: str) -> None:
        """Drive one dequeued task from Running to Success or Failed."""
        state = {"resume": False}

        def begin(task: Task) -> Optional[bool]:
            # another worker took a duplicate queue entry for this task
            if task.is_actively_running(self._clock(), self.settings.running_grace_seconds):
                return False
            state["resume"] = task.resume
            task.resume = False
            task.status = TaskStatus.running
            task.stage = Stage.resolve_metadata.value
            task.progress = ""
            task.speed = ""
            task.eta = ""

        started = self.store.update(task_id, begin)
        if started is None:
            _logger.info("Skipping dequeued task that is gone or already running task_id=%s", task_id)
            return

        _logger.info("Task running task_id=%s url=%s resume=%s", task_id, started.url, state["resume"])
        start = time.monotonic()
        try:
            self._execute(started, state["resume"])
        except Exception as exc:
            _logger.exception("Task run crashed task_id=%s", task_id)
            self._fail(task_id, f"Unexpected error: {exc}")
        _logger.info("Task run finished task_id=%s elapsed_ms=%d", task_id, int((time.monotonic() - start) * 1000))

    def _execute(self, task: Task, resume_requested: bool) -> None:
        task_id = task.id

        metadata = self.resolver.resolve(task.url)
        if metadata is not None:
            if self.store.update(task_id, lambda current: apply_metadata(current, metadata)) is None:
                return

        output_dir = self.output_dir_for(task)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._fail(task_id, f"Failed to create output directory {output_dir}: {exc}")
            return

        if self._set_stage(task_id, Stage.download) is None:
            return

        profile = self.get_active_profile()
        args = self.engine.download_args(task.url, output_dir, profile.args, resume=resume_requested)
        run_started = time.time()
        try:
            self.engine.stream(args, on_line=lambda line: self._on_engine_line(task_id, line))
        except EngineFailure as exc:
            self._fail(task_id, exc.describe())
            return

        if self._set_stage(task_id, Stage.finalize) is None:
            return

        output_path = newest_file(output_dir, since=run_started) or newest_file(output_dir)
        self._succeed(task_id, output_path)

    def _set_stage(self, task_id: str, stage: Stage) -> Optional[Task]:
        def set_stage(task: Task) -> None:
            task.stage = stage.value

        return self.store.update(task_id, set_stage)

    def _on_engine_line(self, task_id: str, line: str) -> None:
        update = parse_progress_line(line)
        if update is None:
            return
        self.store.update(task_id, lambda task: apply_progress(task, update))

    def _succeed(self, task_id: str, output_path: Optional[Path]) -> None:
        def finish(task: Task) -> None:
            task.status = TaskStatus.success
            task.stage = Stage.finalize.value
            task.output_path = str(output_path) if output_path else ""
            task.error_message = ""
            if output_path is not None:
                if is_placeholder_title(task.title):
                    task.title = output_path.stem
                try:
                    if output_path.is_file():
                        task.filesize = output_path.stat().st_size
                except OSError:
                    pass
            task.missing_output = output_missing(task.output_path)
            task.progress = "100%"

        updated = self.store.update(task_id, finish)
        if updated is not None:
            _logger.info("Task succeeded task_id=%s output_path=%s", task_id, updated.output_path)

    def _fail(self, task_id: str, message: str) -> None:
        def fail(task: Task) -> None:
            task.status = TaskStatus.failed
            task.stage = Stage.finalize.value
            task.error_message = message

        updated = self.store.update(task_id, fail)
        if updated is not None:
            _logger.warning("Task failed task_id=%s error=%s", task_id, message.splitlines()[0] if message else "")
