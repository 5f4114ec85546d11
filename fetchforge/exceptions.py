"""Typed errors surfaced by task operations."""
from typing import Optional, Sequence


class FetchForgeError(Exception):
    """Base exception for all application-specific errors."""

    kind = "Error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class TaskNotFound(FetchForgeError):
    """Raised when a task id is unknown."""

    kind = "NotFound"
    status_code = 404

    def __init__(self, task_id: str):
        super().__init__(f"Task with ID {task_id} not found")
        self.task_id = task_id


class ProfileNotFound(FetchForgeError):
    kind = "ProfileNotFound"
    status_code = 404

    def __init__(self, profile_id: str):
        super().__init__(f"Profile {profile_id!r} not found")
        self.profile_id = profile_id


class PathNotFound(FetchForgeError):
    """Raised when an output directory or a user supplied path does not exist."""

    kind = "NotFound"
    status_code = 404


class AlreadyRunning(FetchForgeError):
    kind = "AlreadyRunning"
    status_code = 409


class InvalidPayload(FetchForgeError):
    """Raised when an import payload cannot be accepted as a whole."""

    kind = "InvalidPayload"
    status_code = 400


class DeletionFailed(FetchForgeError):
    kind = "DeletionFailed"
    status_code = 500


class FileMissing(FetchForgeError):
    kind = "FileMissing"
    status_code = 404


class OutputPending(FetchForgeError):
    kind = "OutputPending"
    status_code = 409


class QueueFull(FetchForgeError):
    kind = "QueueFull"
    status_code = 503


class EngineFailure(FetchForgeError):
    """
    Raised when the engine exits non-zero or cannot be started.

    Keeps everything needed to build a diagnostic for the task record.
    """

    kind = "EngineFailure"
    status_code = 502

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        cause: Optional[BaseException] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cause = cause
        super().__init__(self.describe())

    def describe(self) -> str:
        """Compose exit status, command line and captured output into one message."""
        headline = "yt-dlp failed"
        if self.returncode is not None:
            headline += f" (exit code {self.returncode})"

        parts = [headline, "Command: " + " ".join(self.command)]
        stdout = self.stdout.strip()
        stderr = self.stderr.strip()
        if stdout:
            parts.append("Stdout:\n" + stdout)
        if stderr:
            parts.append("Stderr:\n" + stderr)
        if not stdout and not stderr:
            reason = str(self.cause) if self.cause is not None else "unknown error"
            parts.append("Error: " + reason)
        return "\n".join(parts)
