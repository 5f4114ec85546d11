"""Atomic JSON persistence for the task snapshot and config file"""
import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Optional

_logger = logging.getLogger("fetchforge")


def atomic_write_text(path: Path, text: str) -> None:
    """Write to a sibling temp file, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class JsonFile:
    """A JSON document on disk; reads tolerate absence, writes never raise."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            _logger.debug("No file to load path=%s", self.path)
            return None
        except OSError:
            _logger.exception("Error reading file path=%s", self.path)
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Ignoring malformed JSON file path=%s", self.path)
            return None

    def save(self, data: Any) -> bool:
        try:
            atomic_write_text(self.path, json.dumps(data, indent=2, ensure_ascii=False))
        except Exception:
            _logger.exception("Error saving file path=%s", self.path)
            return False
        _logger.debug("Saved file path=%s", self.path)
        return True
