"""Import and export of task collections"""
import json
import logging
from typing import Any, List, Sequence, Union

from pydantic import ValidationError

from fetchforge.exceptions import InvalidPayload
from fetchforge.utils import output_missing

from .models import Task, TaskStatus

_logger = logging.getLogger("fetchforge")

MERGE = "merge"
REPLACE = "replace"
IMPORT_MODES = (MERGE, REPLACE)

Payload = Union[str, bytes, Sequence[Any]]


def export_records(tasks: Sequence[Task]) -> List[dict]:
    return [task.to_record() for task in tasks]


def export_text(tasks: Sequence[Task]) -> str:
    return json.dumps(export_records(tasks), indent=2, ensure_ascii=False)


def parse_import_payload(payload: Payload) -> List[Task]:
    """Decode and validate an import payload; any bad record rejects the whole payload."""
    if isinstance(payload, (str, bytes)):
        if not payload.strip():
            raise InvalidPayload("Empty import payload")
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise InvalidPayload(f"Invalid JSON: {exc.msg}") from exc

    if not isinstance(payload, (list, tuple)):
        raise InvalidPayload("Import payload must be a list of task records")

    tasks: List[Task] = []
    for index, record in enumerate(payload):
        if isinstance(record, Task):
            task = record.model_copy()
        elif isinstance(record, dict):
            try:
                task = Task.model_validate(record)
            except ValidationError as exc:
                raise InvalidPayload(f"Invalid task record at index {index}: {exc.errors()[0]['msg']}") from exc
        else:
            raise InvalidPayload(f"Invalid task record at index {index}")
        if not task.id.strip():
            raise InvalidPayload("Task id is required")
        tasks.append(task)
    return tasks


def prepare_imported(tasks: Sequence[Task], overwrite_downloaded: bool) -> List[Task]:
    """
    Reset downloaded records when asked to overwrite, then recompute
    missing_output from disk for every record.
    """
    prepared = []
    for task in tasks:
        task = task.model_copy()
        if overwrite_downloaded and task.status == TaskStatus.success:
            task.status = TaskStatus.queued
            task.progress = ""
            task.output_path = ""
            task.error_message = ""
        task.missing_output = output_missing(task.output_path)
        prepared.append(task)
    return prepared


def validate_mode(mode: str) -> str:
    mode = (mode or "").strip().lower()
    if mode not in IMPORT_MODES:
        raise InvalidPayload(f"Invalid import mode {mode!r}; expected one of {', '.join(IMPORT_MODES)}")
    return mode
