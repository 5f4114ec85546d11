"""Engine command construction and subprocess handling."""

import sys
from pathlib import Path

import pytest

from fetchforge.config import Settings, parse_extra_args
from fetchforge.exceptions import EngineFailure
from fetchforge.services import Engine, resolve_engine_command
from fetchforge.services.progress import PROGRESS_TEMPLATE


def test_download_args_order(temp_dir: Path):
    engine = Engine(["yt-dlp"], extra_args=["--proxy", "socks5://h:1"])
    args = engine.download_args("https://example.com/a", temp_dir, ["-x", "--audio-format", "mp3"], resume=True)
    assert args == [
        "--newline",
        "--progress-template",
        PROGRESS_TEMPLATE,
        "-x",
        "--audio-format",
        "mp3",
        "--proxy",
        "socks5://h:1",
        "--continue",
        "-o",
        str(temp_dir / "%(title)s.%(ext)s"),
        "https://example.com/a",
    ]


def test_download_args_without_resume(temp_dir: Path):
    args = Engine(["yt-dlp"]).download_args("https://example.com/a", temp_dir)
    assert "--continue" not in args
    assert args[-1] == "https://example.com/a"


def test_metadata_args_include_extra_args():
    engine = Engine(["yt-dlp"], extra_args=["--cookies", "c.txt"])
    assert engine.metadata_args("https://example.com/a") == [
        "--skip-download", "--no-warnings", "--no-playlist", "-J", "--cookies", "c.txt", "https://example.com/a",
    ]


def test_parse_extra_args():
    assert parse_extra_args(None) == []
    assert parse_extra_args("   ") == []
    assert parse_extra_args('--user-agent "Mozilla 5" -N 4') == ["--user-agent", "Mozilla 5", "-N", "4"]


def test_override_path_wins(temp_dir: Path):
    binary = temp_dir / "yt-dlp-custom"
    binary.write_text("#!/bin/sh\n")
    settings = Settings.for_home(temp_dir, ytdlp_path=str(binary))
    assert resolve_engine_command(settings) == [str(binary)]


def test_stream_collects_lines_from_both_streams():
    code = "import sys; print('out one'); print('progress:1%|a|b'); print('err one', file=sys.stderr)"
    engine = Engine([sys.executable, "-c", code])
    seen = []
    stdout, stderr = engine.stream([], on_line=seen.append)
    assert stdout == "out one\nprogress:1%|a|b\n"
    assert stderr == "err one\n"
    assert sorted(seen) == ["err one", "out one", "progress:1%|a|b"]


def test_stream_failure_carries_diagnostics():
    code = "import sys; print('partial output'); print('403 Forbidden', file=sys.stderr); sys.exit(3)"
    engine = Engine([sys.executable, "-c", code])
    with pytest.raises(EngineFailure) as excinfo:
        engine.stream(["--flag"])
    failure = excinfo.value
    assert failure.returncode == 3
    message = failure.describe()
    assert message.startswith("yt-dlp failed (exit code 3)")
    assert "Command: " + " ".join([sys.executable, "-c", code, "--flag"]) in message
    assert "Stdout:\npartial output" in message
    assert "Stderr:\n403 Forbidden" in message


def test_stream_missing_binary_reports_raw_error(temp_dir: Path):
    engine = Engine([str(temp_dir / "missing-engine")])
    with pytest.raises(EngineFailure) as excinfo:
        engine.stream(["https://example.com/a"])
    message = excinfo.value.describe()
    assert excinfo.value.returncode is None
    assert "Error: " in message
    assert "Stdout:" not in message


def test_capture_returns_stdout():
    engine = Engine([sys.executable, "-c", "print('{}')"])
    assert engine.capture([]).strip() == "{}"
