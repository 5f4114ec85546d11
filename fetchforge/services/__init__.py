from .engine import Engine, resolve_engine_command
from .metadata import MediaMetadata, MetadataResolver
from .task_manager import TaskManager
from .worker_pool import WorkerPool

__all__ = [
    "Engine",
    "resolve_engine_command",
    "MediaMetadata",
    "MetadataResolver",
    "TaskManager",
    "WorkerPool",
]
