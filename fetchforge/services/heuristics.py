"""Title-quality and resume-eligibility predicates"""
import datetime
import logging
import os
from pathlib import Path

from fetchforge.state.models import ResumeStatus, Task
from fetchforge.utils import PLACEHOLDER_TITLE

_logger = logging.getLogger("fetchforge")

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
MIN_HEX_TITLE_LENGTH = 12
PARTIAL_SUFFIX = ".ytdl"
PARTIAL_MARKER = ".part"


def is_placeholder_title(title: str) -> bool:
    """
    True when a title carries no human information yet.

    Empty, the literal placeholder, purely numeric (an id), or a hex string
    of at least 12 characters (a hash-like id).
    """
    title = (title or "").strip()
    if not title or title == PLACEHOLDER_TITLE:
        return True
    if title.isascii() and title.isdigit():
        return True
    return len(title) >= MIN_HEX_TITLE_LENGTH and all(ch in _HEX_DIGITS for ch in title)


def normalize_for_match(value: str) -> str:
    """Lowercase and keep only ASCII letters and digits."""
    return "".join(ch for ch in (value or "").lower() if ch.isascii() and ch.isalnum())


def is_partial_file(name: str) -> bool:
    lower = name.lower()
    return PARTIAL_MARKER in lower or lower.endswith(PARTIAL_SUFFIX)


def task_output_dir(download_dir: Path, created_at: datetime.datetime) -> Path:
    """Output bucket for a task, keyed by its creation date (never the current date)."""
    return Path(download_dir) / created_at.astimezone().strftime("%Y-%m-%d")


def resume_status(
    task: Task,
    output_dir: Path,
    at: datetime.datetime,
    grace_seconds: float,
    partial_window_seconds: float,
) -> ResumeStatus:
    """Decide whether a task can continue a previously interrupted download."""
    if task.is_actively_running(at, grace_seconds):
        return ResumeStatus.none

    output_path = task.output_path.strip()
    if output_path and task.filesize > 0:
        path = Path(output_path)
        try:
            if path.is_file() and path.stat().st_size < task.filesize:
                return ResumeStatus.ready
        except OSError:
            pass

    if is_placeholder_title(task.title):
        return ResumeStatus.none
    wanted = normalize_for_match(task.title)
    if not wanted:
        return ResumeStatus.none

    window_start = (task.created_at - datetime.timedelta(seconds=partial_window_seconds)).timestamp()
    recent_partial = False
    for root, _dirs, files in os.walk(output_dir):
        for name in files:
            if not is_partial_file(name):
                continue
            if wanted in normalize_for_match(name):
                _logger.debug("Resume candidate matched task_id=%s file=%s", task.id, name)
                return ResumeStatus.ready
            try:
                if os.stat(os.path.join(root, name)).st_mtime >= window_start:
                    recent_partial = True
            except OSError:
                continue

    if recent_partial:
        return ResumeStatus.ready
    return ResumeStatus.none
