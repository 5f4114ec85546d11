"""Task data model"""
import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_epoch() -> datetime.datetime:
    return datetime.datetime.fromtimestamp(0, tz=datetime.timezone.utc)


def now() -> datetime.datetime:
    """Timezone-aware local time; task timestamps are always aware."""
    return datetime.datetime.now().astimezone()


class TaskStatus(str, Enum):
    queued = "Queued"
    running = "Running"
    success = "Success"
    failed = "Failed"


class Stage(str, Enum):
    parse_url = "Parse URL"
    resolve_metadata = "Resolve metadata"
    download = "Download"
    finalize = "Finalize"
    resume = "Resume"
    force_resume = "Force Resume"


class FileStatus(str, Enum):
    ok = "ok"
    pending = "pending"
    missing = "missing"


class ResumeStatus(str, Enum):
    ready = "ready"
    none = "none"


class Task(BaseModel):
    """
    One request to retrieve a resource.

    Serialized with camelCase names; the same shape is used for the
    snapshot file, export and import.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    id: str = ""
    url: str = ""
    title: str = ""
    source_host: str = ""
    status: TaskStatus = TaskStatus.queued
    stage: str = ""
    progress: str = ""
    speed: str = ""
    eta: str = ""
    output_path: str = ""
    missing_output: bool = False
    error_message: str = ""
    resume: bool = False
    duration: int = 0
    filesize: int = 0
    width: int = 0
    height: int = 0
    created_at: datetime.datetime = Field(default_factory=utc_epoch)
    updated_at: datetime.datetime = Field(default_factory=utc_epoch)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _ensure_aware(cls, value: datetime.datetime) -> datetime.datetime:
        # Naive timestamps from hand-written payloads are taken as local time.
        if value.tzinfo is None:
            return value.astimezone()
        return value

    @field_validator("duration", "filesize", "width", "height", mode="before")
    @classmethod
    def _truncate_numbers(cls, value):
        if value is None:
            return 0
        if isinstance(value, float):
            return int(value)
        return value

    def is_actively_running(self, at: datetime.datetime, grace_seconds: float) -> bool:
        """Running and touched within the grace window: a worker still owns it."""
        if self.status != TaskStatus.running:
            return False
        return (at - self.updated_at).total_seconds() < grace_seconds

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
