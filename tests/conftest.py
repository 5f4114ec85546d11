"""
Shared fixtures and test utilities.
"""

import sys
import tempfile
import time
from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Callable, List

import pytest
from httpx import ASGITransport, AsyncClient

from fetchforge.app import create_app
from fetchforge.config import Settings
from fetchforge.exceptions import DeletionFailed
from fetchforge.services import Engine, TaskManager

FAKE_ENGINE = Path(__file__).parent / "fake_ytdlp.py"


class FakeDesktop:
    """Records open/trash requests instead of touching the desktop."""

    def __init__(self):
        self.opened: List[Path] = []
        self.trashed: List[Path] = []
        self.fail_trash = False

    def open(self, target: Path) -> None:
        self.opened.append(Path(target))

    def trash(self, target: Path) -> None:
        if self.fail_trash:
            raise DeletionFailed(f"Failed to move file to trash: {target}")
        self.trashed.append(Path(target))
        Path(target).unlink()


def wait_for(predicate: Callable[[], bool], timeout: float = 20.0, interval: float = 0.05) -> None:
    """Poll until ``predicate`` holds or fail the test."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return
        time.sleep(interval)
    raise AssertionError("condition not met within %.1fs" % timeout)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Provide settings rooted in a temporary home directory."""
    return Settings.for_home(temp_dir / "home", max_workers=2, metadata_timeout=30)


@pytest.fixture
def fake_engine() -> Engine:
    """Provide an engine that runs the fake yt-dlp script."""
    return Engine([sys.executable, str(FAKE_ENGINE)])


@pytest.fixture
def desktop() -> FakeDesktop:
    return FakeDesktop()


@pytest.fixture
def manager(settings: Settings, fake_engine: Engine, desktop: FakeDesktop) -> Generator[TaskManager, None, None]:
    """Provide a TaskManager whose workers are not started."""
    mgr = TaskManager(settings, engine=fake_engine, opener=desktop.open, trasher=desktop.trash)
    yield mgr
    mgr.shutdown(timeout=10)


@pytest.fixture
def running_manager(manager: TaskManager) -> TaskManager:
    """Provide a TaskManager with its worker pool started."""
    manager.start()
    return manager


@pytest.fixture
def engine_log(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Record every fake engine invocation as a JSON line."""
    path = temp_dir / "engine-calls.jsonl"
    monkeypatch.setenv("FAKE_YTDLP_LOG", str(path))
    return path


@pytest.fixture
async def async_client(manager: TaskManager) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for the FastAPI app (workers not started)."""
    app = create_app(manager, start_workers=False)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_video_info() -> dict:
    """Provide a sample ``-J`` metadata document."""
    return {
        "id": "dQw4w9WgXcQ",
        "title": "Sample Video",
        "extractor": "youtube",
        "duration": 213.0,
        "formats": [
            {"format_id": "137", "ext": "mp4", "height": 1080, "width": 1920, "filesize": 50_000_000},
            {"format_id": "140", "ext": "m4a", "filesize_approx": 3_000_000},
        ],
    }


@pytest.fixture
def wait_until() -> Callable[..., None]:
    """Provide the polling helper to tests."""
    return wait_for
