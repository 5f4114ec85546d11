"""Metadata-only engine runs and selection of media details"""
import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel

from fetchforge.exceptions import EngineFailure
from fetchforge.state.models import Task
from fetchforge.utils import source_host_from_url

from .engine import Engine
from .heuristics import is_placeholder_title

_logger = logging.getLogger("fetchforge")


class MediaMetadata(BaseModel):
    title: str = ""
    duration: int = 0
    filesize: int = 0
    width: int = 0
    height: int = 0
    source_host: str = ""


class FormatInfo(NamedTuple):
    resolution: str = ""
    width: int = 0
    height: int = 0
    filesize: int = 0


def _as_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def pick_filesize(primary: Any, fallback: Any) -> int:
    """Exact size when reported, else the approximate one."""
    if primary is not None:
        return _as_int(primary)
    if fallback is not None:
        return _as_int(fallback)
    return 0


def parse_resolution(value: Optional[str]) -> Tuple[int, int]:
    """Parse ``WIDTHxHEIGHT``; anything else is (0, 0)."""
    parts = (value or "").strip().lower().split("x")
    if len(parts) != 2:
        return 0, 0
    try:
        return int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        return 0, 0


def pick_best_format(formats: Optional[List[Dict[str, Any]]]) -> FormatInfo:
    """Largest filesize wins; a variant without size competes on width*height."""
    best = FormatInfo()
    best_score = 0
    for fmt in formats or []:
        if not isinstance(fmt, dict):
            continue
        filesize = pick_filesize(fmt.get("filesize"), fmt.get("filesize_approx"))
        width = _as_int(fmt.get("width"))
        height = _as_int(fmt.get("height"))
        resolution = str(fmt.get("resolution") or "").strip()
        if width == 0 and height == 0 and resolution:
            width, height = parse_resolution(resolution)
        score = filesize or width * height
        if score > best_score:
            best_score = score
            best = FormatInfo(resolution, width, height, filesize)
    return best


def parse_metadata(info: Dict[str, Any], url: str = "") -> MediaMetadata:
    """Reduce a ``-J`` description to the fields a task keeps."""
    best = pick_best_format(info.get("formats"))

    width = _as_int(info.get("width"))
    height = _as_int(info.get("height"))
    resolution = str(info.get("resolution") or "")
    if width == 0 and height == 0 and resolution:
        width, height = parse_resolution(resolution)
    if width == 0 and height == 0:
        width, height = best.width, best.height

    filesize = pick_filesize(info.get("filesize"), info.get("filesize_approx"))
    if filesize == 0:
        filesize = best.filesize

    source = str(info.get("extractor") or "").strip() or source_host_from_url(url)
    return MediaMetadata(
        title=str(info.get("title") or "").strip(),
        duration=_as_int(info.get("duration")),
        filesize=filesize,
        width=width,
        height=height,
        source_host=source,
    )


def apply_metadata(task: Task, metadata: MediaMetadata) -> bool:
    """Merge resolved metadata into a task without clobbering a human title."""
    if metadata.title and is_placeholder_title(task.title):
        task.title = metadata.title
    if metadata.source_host and not task.source_host:
        task.source_host = metadata.source_host
    if metadata.duration > 0:
        task.duration = metadata.duration
    if metadata.filesize > 0:
        task.filesize = metadata.filesize
    if metadata.width > 0:
        task.width = metadata.width
    if metadata.height > 0:
        task.height = metadata.height
    return True


class MetadataResolver:
    """Runs the engine in metadata-only mode; failures mean "no metadata"."""

    def __init__(self, engine: Engine, timeout: Optional[float] = None):
        self.engine = engine
        self.timeout = timeout

    def resolve(self, url: str) -> Optional[MediaMetadata]:
        if not (url or "").strip():
            return None
        try:
            output = self.engine.capture(self.engine.metadata_args(url), timeout=self.timeout)
        except EngineFailure as exc:
            _logger.info("Metadata unavailable url=%s returncode=%s", url, exc.returncode)
            return None
        try:
            info = json.loads(output)
        except json.JSONDecodeError:
            _logger.info("Metadata output is not JSON url=%s", url)
            return None
        if not isinstance(info, dict):
            return None
        metadata = parse_metadata(info, url)
        _logger.debug(
            "Metadata resolved url=%s title=%r duration=%d filesize=%d size=%dx%d",
            url,
            metadata.title,
            metadata.duration,
            metadata.filesize,
            metadata.width,
            metadata.height,
        )
        return metadata
