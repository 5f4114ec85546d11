"""Progress line parsing."""

from fetchforge.services.progress import ProgressUpdate, apply_progress, parse_progress_line
from fetchforge.state import Task


def test_parses_all_fields():
    assert parse_progress_line("progress:  42.1%| 1.5MiB/s |00:12\n") == ProgressUpdate("42.1%", "1.5MiB/s", "00:12")


def test_missing_fields_are_empty():
    assert parse_progress_line("progress:7%") == ProgressUpdate("7%", "", "")
    assert parse_progress_line("progress:7%|2KiB/s") == ProgressUpdate("7%", "2KiB/s", "")


def test_extra_separators_stay_in_last_field():
    assert parse_progress_line("progress:1%|2|3|4") == ProgressUpdate("1%", "2", "3|4")


def test_ordinary_output_is_ignored():
    assert parse_progress_line("[download] Destination: clip.mp4") is None
    assert parse_progress_line("  progress:50%|x|y") is None
    assert parse_progress_line("progress:   ") is None


def test_apply_progress_reports_changes_only():
    task = Task(id="t1")
    update = ProgressUpdate("10%", "1MiB/s", "00:05")
    assert apply_progress(task, update) is True
    assert (task.progress, task.speed, task.eta) == ("10%", "1MiB/s", "00:05")
    assert apply_progress(task, update) is False
    assert apply_progress(task, ProgressUpdate("10%", "1MiB/s", "00:04")) is True
