"""Tests for the JSON file and SQL sidecar stores."""
import json
from datetime import datetime, timezone

import pytest

from webpdesk.conversion.models import MetadataSidecar
from webpdesk.conversion.sidecar import FileSidecarStore
from webpdesk.db import SqlSidecarStore, make_engine


@pytest.fixture(params=["files", "sql"])
def store(request, tmp_path):
    if request.param == "files":
        return FileSidecarStore(tmp_path / ".metadata")
    return SqlSidecarStore(make_engine(f"sqlite:///{tmp_path / 'db' / 'sidecars.db'}"))


def test_round_trip(store):
    assert store.write("photo", MetadataSidecar("photo.png", 204800)) is True
    sidecar = store.read("photo")
    assert sidecar is not None
    assert sidecar.original_size == 204800
    assert sidecar.original_name == "photo.png"
    assert sidecar.converted_at.tzinfo is not None


def test_write_overwrites(store):
    store.write("photo", MetadataSidecar("photo.png", 1))
    store.write("photo", MetadataSidecar("photo.jpg", 2))
    sidecar = store.read("photo")
    assert (sidecar.original_name, sidecar.original_size) == ("photo.jpg", 2)


def test_read_missing_is_absent(store):
    assert store.read("nothing") is None


def test_delete_is_best_effort(store):
    store.write("photo", MetadataSidecar("photo.png", 10))
    store.delete("photo")
    assert store.read("photo") is None
    # Deleting again is not an error
    store.delete("photo")


def test_file_layout_and_format(tmp_path):
    store = FileSidecarStore(tmp_path / ".metadata")
    ts = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    store.write("photo", MetadataSidecar("photo.png", 2048, ts))
    doc = json.loads((tmp_path / ".metadata" / "photo.meta.json").read_text())
    assert doc == {"originalName": "photo.png", "originalSize": 2048, "convertedAt": "2024-05-01T12:30:00+00:00"}


@pytest.mark.parametrize("content", [
    "",
    "   \n",
    "{not json",
    "[1, 2, 3]",
    '{"originalName": "a.png"}',
    '{"originalName": "a.png", "originalSize": "12", "convertedAt": "2024-01-01T00:00:00Z"}',
    '{"originalName": "a.png", "originalSize": true, "convertedAt": "2024-01-01T00:00:00Z"}',
    '{"originalName": "a.png", "originalSize": 12, "convertedAt": "yesterday"}',
])
def test_corrupt_file_reads_as_absent(tmp_path, content):
    store = FileSidecarStore(tmp_path)
    store.path_for("photo").write_text(content)
    assert store.read("photo") is None


def test_reads_javascript_timestamps(tmp_path):
    store = FileSidecarStore(tmp_path)
    store.path_for("photo").write_text(
        '{"originalName":"photo.png","originalSize":5,"convertedAt":"2024-01-02T03:04:05.678Z"}'
    )
    sidecar = store.read("photo")
    assert sidecar.converted_at == datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def test_file_write_failure_returns_false(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = FileSidecarStore(blocker / ".metadata")
    assert store.write("photo", MetadataSidecar("photo.png", 1)) is False
