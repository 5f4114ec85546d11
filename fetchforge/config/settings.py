"""Configuration management"""
import os
import shlex
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .profiles import DEFAULT_PROFILE_ID

# Read .env if present
load_dotenv()

_logger = logging.getLogger("fetchforge")

DEFAULT_MAX_WORKERS = 3
DEFAULT_QUEUE_SIZE = 100
# Resume heuristic thresholds
DEFAULT_RUNNING_GRACE_SECONDS = 30.0
DEFAULT_PARTIAL_WINDOW_SECONDS = 60.0
DEFAULT_METADATA_TIMEOUT = 120.0

TASKS_FILE_NAME = "tasks.json"
CONFIG_FILE_NAME = "config.json"


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    return Path(value).expanduser()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        _logger.warning("Ignoring invalid integer env=%s value=%r", name, value)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        _logger.warning("Ignoring invalid number env=%s value=%r", name, value)
        return default


def parse_extra_args(raw: Optional[str]) -> List[str]:
    """Split the raw extra-arguments string the way a shell would."""
    if not raw or not raw.strip():
        return []
    try:
        return shlex.split(raw)
    except ValueError:
        _logger.warning("Extra engine args are not shell-quoted, splitting on whitespace raw=%r", raw)
        return raw.split()


class Settings(BaseModel):
    """
    Process-wide configuration, loaded once at startup.

    - home_dir: process-owned directory holding the tasks snapshot and config file
    - download_dir: root of the date-bucketed output tree
    - ytdlp_path / ytdlp_args: engine override path and extra arguments
    - running_grace_seconds / partial_window_seconds: resume heuristic thresholds
    """

    home_dir: Path
    download_dir: Path
    export_dir: Path
    ytdlp_path: Optional[str] = None
    ytdlp_args: List[str] = Field(default_factory=list)
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1)
    queue_size: int = Field(default=DEFAULT_QUEUE_SIZE, ge=1)
    running_grace_seconds: float = DEFAULT_RUNNING_GRACE_SECONDS
    partial_window_seconds: float = DEFAULT_PARTIAL_WINDOW_SECONDS
    metadata_timeout: float = DEFAULT_METADATA_TIMEOUT

    @property
    def tasks_file(self) -> Path:
        return self.home_dir / TASKS_FILE_NAME

    @property
    def config_file(self) -> Path:
        return self.home_dir / CONFIG_FILE_NAME

    @classmethod
    def for_home(cls, home_dir: Path, **overrides) -> "Settings":
        """Build settings rooted in one directory (downloads and exports inside it)."""
        values = {
            "home_dir": home_dir,
            "download_dir": home_dir / "downloads",
            "export_dir": home_dir / "exports",
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls) -> "Settings":
        home_dir = _env_path("FETCHFORGE_HOME", Path.home() / ".fetchforge")
        cfg = cls(
            home_dir=home_dir,
            download_dir=_env_path("FETCHFORGE_DOWNLOAD_DIR", home_dir / "downloads"),
            export_dir=_env_path("FETCHFORGE_EXPORT_DIR", Path.home() / "Downloads"),
            ytdlp_path=os.getenv("FETCHFORGE_YTDLP_PATH", "").strip() or None,
            ytdlp_args=parse_extra_args(os.getenv("FETCHFORGE_YTDLP_ARGS")),
            max_workers=_env_int("FETCHFORGE_MAX_WORKERS", DEFAULT_MAX_WORKERS),
            queue_size=_env_int("FETCHFORGE_QUEUE_SIZE", DEFAULT_QUEUE_SIZE),
            running_grace_seconds=_env_float("FETCHFORGE_RUNNING_GRACE_SECONDS", DEFAULT_RUNNING_GRACE_SECONDS),
            partial_window_seconds=_env_float("FETCHFORGE_PARTIAL_WINDOW_SECONDS", DEFAULT_PARTIAL_WINDOW_SECONDS),
            metadata_timeout=_env_float("FETCHFORGE_METADATA_TIMEOUT", DEFAULT_METADATA_TIMEOUT),
        )
        _logger.info(
            "Settings loaded home_dir=%s download_dir=%s max_workers=%d ytdlp_path_set=%s extra_args=%d",
            cfg.home_dir,
            cfg.download_dir,
            cfg.max_workers,
            bool(cfg.ytdlp_path),
            len(cfg.ytdlp_args),
        )
        return cfg


class AppConfig(BaseModel):
    """Persisted user choices (config.json)."""

    active_profile_id: str = Field(default=DEFAULT_PROFILE_ID, alias="activeProfileId")

    model_config = {"populate_by_name": True}


def get_server_address() -> tuple:
    """HOST/PORT for the API server."""
    host = os.getenv("HOST", "0.0.0.0")
    port = _env_int("PORT", 8000)
    return host, port
