"""Output discovery and platform file collaborators."""

import os
import subprocess
import time

import pytest

from fetchforge.exceptions import DeletionFailed
from fetchforge.services import files


def test_newest_file(temp_dir):
    assert files.newest_file(temp_dir / "missing") is None
    old = temp_dir / "old.mp4"
    new = temp_dir / "nested" / "new.mp4"
    new.parent.mkdir()
    old.write_bytes(b"a")
    new.write_bytes(b"b")
    stamp = time.time()
    os.utime(old, (stamp - 100, stamp - 100))
    os.utime(new, (stamp - 50, stamp - 50))

    assert files.newest_file(temp_dir) == new
    assert files.newest_file(temp_dir, since=stamp - 75) == new
    assert files.newest_file(temp_dir, since=stamp) is None


def test_move_to_trash_failure(temp_dir, monkeypatch):
    def fail(command, **kwargs):
        raise subprocess.CalledProcessError(1, command)

    monkeypatch.setattr(files.subprocess, "run", fail)
    with pytest.raises(DeletionFailed):
        files.move_to_trash(temp_dir / "clip.mp4")


def test_move_to_trash_runs_platform_command(temp_dir, monkeypatch):
    calls = []
    monkeypatch.setattr(files.subprocess, "run", lambda command, **kwargs: calls.append(command))
    monkeypatch.setattr(files.sys, "platform", "linux")
    files.move_to_trash(temp_dir / "clip.mp4")
    assert calls == [["gio", "trash", str(temp_dir / "clip.mp4")]]
