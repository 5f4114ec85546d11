"""Engine progress line parsing"""
from typing import NamedTuple, Optional

from fetchforge.state.models import Task

PROGRESS_PREFIX = "progress:"
PROGRESS_TEMPLATE = (
    PROGRESS_PREFIX
    + "%(progress._percent_str)s|%(progress._speed_str)s|%(progress._eta_str)s"
)


class ProgressUpdate(NamedTuple):
    percent: str
    speed: str = ""
    eta: str = ""


def parse_progress_line(line: str) -> Optional[ProgressUpdate]:
    """
    Parse a ``progress:<percent>|<speed>|<eta>`` line.

    Returns None for ordinary output and for a bare prefix with no payload.
    """
    line = line.rstrip("\r\n")
    if not line.startswith(PROGRESS_PREFIX):
        return None
    payload = line[len(PROGRESS_PREFIX):].strip()
    if not payload:
        return None
    fields = [field.strip() for field in payload.split("|", 2)]
    fields += [""] * (3 - len(fields))
    return ProgressUpdate(*fields)


def apply_progress(task: Task, update: ProgressUpdate) -> bool:
    """Copy progress fields onto a task; False when nothing would change."""
    if (task.progress, task.speed, task.eta) == tuple(update):
        return False
    task.progress, task.speed, task.eta = update
    return True
