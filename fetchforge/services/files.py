"""Output file discovery and platform file collaborators"""
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

from fetchforge.exceptions import DeletionFailed

_logger = logging.getLogger("fetchforge")


def newest_file(root: Path, since: Optional[float] = None) -> Optional[Path]:
    """
    Most recently modified file under ``root``.

    With ``since`` (epoch seconds), only files modified at or after it count.
    """
    newest_path: Optional[Path] = None
    newest_mtime = 0.0
    for dirpath, _dirs, files in os.walk(root):
        for name in files:
            path = Path(dirpath) / name
            try:
                mtime = path.stat().st_mtime
            except OSError:
                continue
            if since is not None and mtime < since:
                continue
            if newest_path is None or mtime > newest_mtime:
                newest_path = path
                newest_mtime = mtime
    return newest_path


def open_with_default_app(target: Path) -> None:
    """Hand a file or directory to the desktop's default handler."""
    target = str(target)
    if sys.platform == "darwin":
        command = ["open", target]
    elif sys.platform.startswith("win"):
        command = ["cmd", "/c", "start", "", target]
    else:
        command = ["xdg-open", target]
    _logger.info("Opening path=%s", target)
    subprocess.Popen(command, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)


def move_to_trash(target: Path) -> None:
    """Move a file to the platform trash / recycle bin."""
    target = str(target)
    if sys.platform == "darwin":
        script = 'tell application "Finder" to delete POSIX file "{}"'.format(target.replace('"', '\\"'))
        command = ["osascript", "-e", script]
    elif sys.platform.startswith("win"):
        quoted = target.replace("'", "''")
        script = (
            "Add-Type -AssemblyName Microsoft.VisualBasic; "
            "[Microsoft.VisualBasic.FileIO.FileSystem]::DeleteFile("
            f"'{quoted}','OnlyErrorDialogs','SendToRecycleBin')"
        )
        command = ["powershell", "-NoProfile", "-Command", script]
    else:
        command = ["gio", "trash", target]

    try:
        subprocess.run(command, check=True, stdin=subprocess.DEVNULL, capture_output=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        _logger.warning("Failed to move file to trash path=%s error=%s", target, exc)
        raise DeletionFailed(f"Failed to move file to trash: {target}") from exc
    _logger.info("Moved file to trash path=%s", target)
