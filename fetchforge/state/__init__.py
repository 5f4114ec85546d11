from .models import (
    FileStatus,
    ResumeStatus,
    Stage,
    Task,
    TaskStatus,
)
from .persistence import JsonFile, atomic_write_text
from .task_store import TaskStore

__all__ = [
    "FileStatus",
    "ResumeStatus",
    "Stage",
    "Task",
    "TaskStatus",
    "JsonFile",
    "atomic_write_text",
    "TaskStore",
]
