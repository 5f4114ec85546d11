"""Metadata selection rules and the metadata-only engine run."""

import sys

from fetchforge.services import Engine
from fetchforge.services.metadata import (
    MediaMetadata,
    MetadataResolver,
    apply_metadata,
    parse_metadata,
    parse_resolution,
    pick_best_format,
)
from fetchforge.state import Task


def test_parse_resolution():
    assert parse_resolution("1920x1080") == (1920, 1080)
    assert parse_resolution(" 640X360 ") == (640, 360)
    assert parse_resolution("audio only") == (0, 0)
    assert parse_resolution("") == (0, 0)
    assert parse_resolution(None) == (0, 0)


def test_best_format_prefers_largest_filesize():
    best = pick_best_format([
        {"width": 3840, "height": 2160},
        {"width": 640, "height": 360, "filesize": 9_000_000},
        {"width": 1280, "height": 720, "filesize_approx": 5_000_000},
    ])
    assert (best.width, best.height, best.filesize) == (640, 360, 9_000_000)


def test_best_format_falls_back_to_area():
    best = pick_best_format([
        {"resolution": "640x360"},
        {"resolution": "1280x720"},
        {"resolution": "audio only"},
    ])
    assert (best.width, best.height, best.resolution) == (1280, 720, "1280x720")


def test_best_format_of_nothing():
    assert pick_best_format(None).filesize == 0
    assert pick_best_format([]).width == 0


def test_top_level_values_win(sample_video_info):
    sample_video_info.update({"width": 854, "height": 480, "filesize": 123})
    metadata = parse_metadata(sample_video_info)
    assert metadata.title == "Sample Video"
    assert metadata.duration == 213
    assert (metadata.width, metadata.height, metadata.filesize) == (854, 480, 123)
    assert metadata.source_host == "youtube"


def test_resolution_string_then_best_format(sample_video_info):
    metadata = parse_metadata(dict(sample_video_info, resolution="1280x720"))
    assert (metadata.width, metadata.height) == (1280, 720)
    assert metadata.filesize == 50_000_000

    metadata = parse_metadata(sample_video_info)
    assert (metadata.width, metadata.height) == (1920, 1080)


def test_source_host_falls_back_to_url():
    metadata = parse_metadata({"title": "x"}, "https://www.example.org/v/1")
    assert metadata.source_host == "example.org"


def test_apply_metadata_keeps_human_title():
    task = Task(id="t1", title="Chosen Title", source_host="example.org", duration=5)
    apply_metadata(task, MediaMetadata(title="Other", duration=0, filesize=10, width=2, height=3, source_host="fake"))
    assert task.title == "Chosen Title"
    assert task.source_host == "example.org"
    assert (task.duration, task.filesize, task.width, task.height) == (5, 10, 2, 3)


def test_apply_metadata_replaces_placeholder_title():
    task = Task(id="t1", title="1234567")
    apply_metadata(task, MediaMetadata(title="Real Title"))
    assert task.title == "Real Title"


def test_resolver_reads_engine_json(fake_engine):
    metadata = MetadataResolver(fake_engine, timeout=30).resolve("https://example.com/v/42")
    assert metadata is not None
    assert metadata.title == "Video 42"
    assert metadata.duration == 12
    assert (metadata.width, metadata.height) == (640, 360)
    assert metadata.filesize == 4000
    assert metadata.source_host == "fake"


def test_resolver_failure_means_no_metadata(fake_engine):
    assert MetadataResolver(fake_engine).resolve("https://example.com/forbidden") is None
    assert MetadataResolver(fake_engine).resolve("") is None


def test_resolver_non_json_output_means_no_metadata():
    engine = Engine([sys.executable, "-c", "print('not json')"])
    assert MetadataResolver(engine).resolve("https://example.com/a") is None


def test_resolver_missing_binary_means_no_metadata(temp_dir):
    engine = Engine([str(temp_dir / "no-such-yt-dlp")])
    assert MetadataResolver(engine).resolve("https://example.com/a") is None
