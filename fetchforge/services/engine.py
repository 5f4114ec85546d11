"""yt-dlp engine invocation"""
import importlib.util
import logging
import os
import shutil
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from fetchforge.config import Settings
from fetchforge.exceptions import EngineFailure

from .progress import PROGRESS_TEMPLATE

_logger = logging.getLogger("fetchforge")

ENGINE_BINARY = "yt-dlp"
OUTPUT_TEMPLATE = "%(title)s.%(ext)s"

LineHandler = Callable[[str], None]


def _is_file(path) -> bool:
    return bool(path) and Path(path).is_file()


def resolve_engine_command(settings: Settings) -> List[str]:
    """
    Locate the engine.

    Override path, then PATH, then common install locations, then the
    yt_dlp package installed next to this interpreter.
    """
    if settings.ytdlp_path:
        if _is_file(settings.ytdlp_path):
            return [settings.ytdlp_path]
        _logger.warning("FETCHFORGE_YTDLP_PATH does not exist, ignoring path=%s", settings.ytdlp_path)

    found = shutil.which(ENGINE_BINARY)
    if found:
        return [found]

    candidates = [
        Path("/opt/homebrew/bin") / ENGINE_BINARY,
        Path("/usr/local/bin") / ENGINE_BINARY,
        Path("/usr/bin") / ENGINE_BINARY,
        Path(sys.executable).parent / ENGINE_BINARY,
        settings.home_dir / "bin" / ENGINE_BINARY,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return [str(candidate)]

    if importlib.util.find_spec("yt_dlp") is not None:
        return [sys.executable, "-m", "yt_dlp"]

    _logger.warning("yt-dlp not found, relying on PATH at run time")
    return [ENGINE_BINARY]


def _pump(pipe, buffer: List[str], on_line: Optional[LineHandler]) -> None:
    try:
        for raw in iter(pipe.readline, ""):
            line = raw.rstrip("\r\n")
            buffer.append(line + "\n")
            if on_line is None:
                continue
            try:
                on_line(line)
            except Exception:
                _logger.exception("Line handler failed line=%r", line)
    finally:
        pipe.close()


class Engine:
    """Builds engine command lines and runs them as subprocesses."""

    def __init__(self, command: Sequence[str], extra_args: Sequence[str] = ()):
        self.command = list(command)
        self.extra_args = list(extra_args)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Engine":
        engine = cls(resolve_engine_command(settings), settings.ytdlp_args)
        _logger.info("Engine resolved command=%s extra_args=%s", engine.command, engine.extra_args)
        return engine

    def metadata_args(self, url: str) -> List[str]:
        return ["--skip-download", "--no-warnings", "--no-playlist", "-J", *self.extra_args, url]

    def download_args(
        self,
        url: str,
        output_dir: Path,
        profile_args: Sequence[str] = (),
        resume: bool = False,
    ) -> List[str]:
        args = ["--newline", "--progress-template", PROGRESS_TEMPLATE]
        args.extend(profile_args)
        args.extend(self.extra_args)
        if resume:
            args.append("--continue")
        args.extend(["-o", str(Path(output_dir) / OUTPUT_TEMPLATE), url])
        return args

    def full_command(self, args: Sequence[str]) -> List[str]:
        return self.command + list(args)

    def capture(self, args: Sequence[str], timeout: Optional[float] = None) -> str:
        """Run to completion and return stdout; raise EngineFailure otherwise."""
        command = self.full_command(args)
        try:
            proc = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise EngineFailure(command, cause=exc) from exc
        if proc.returncode != 0:
            raise EngineFailure(command, proc.returncode, proc.stdout, proc.stderr)
        return proc.stdout

    def stream(self, args: Sequence[str], on_line: Optional[LineHandler] = None) -> Tuple[str, str]:
        """
        Run while reading stdout and stderr concurrently, line by line.

        Every line is kept verbatim in the captured buffers and also handed to
        ``on_line``. Returns only after both streams are drained and the
        process has exited.
        """
        command = self.full_command(args)
        _logger.info("Engine start command=%s", " ".join(command))
        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                env=dict(os.environ, PYTHONUNBUFFERED="1"),
            )
        except OSError as exc:
            raise EngineFailure(command, cause=exc) from exc

        stdout_lines: List[str] = []
        stderr_lines: List[str] = []
        readers = [
            threading.Thread(target=_pump, args=(proc.stdout, stdout_lines, on_line), daemon=True, name="engine-stdout"),
            threading.Thread(target=_pump, args=(proc.stderr, stderr_lines, on_line), daemon=True, name="engine-stderr"),
        ]
        for reader in readers:
            reader.start()
        returncode = proc.wait()
        for reader in readers:
            reader.join()

        stdout = "".join(stdout_lines)
        stderr = "".join(stderr_lines)
        elapsed_ms = int((time.monotonic() - start) * 1000)
        _logger.info("Engine done returncode=%d elapsed_ms=%d", returncode, elapsed_ms)
        if returncode != 0:
            raise EngineFailure(command, returncode, stdout, stderr)
        return stdout, stderr
