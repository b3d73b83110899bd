"""Tests for the bridge routes the desktop shell calls."""
import json

import pytest
from fastapi.testclient import TestClient

from conftest import png_bytes
from webpdesk.conversion.service import get_conversion_service
from webpdesk.main import app


@pytest.fixture
def client(service):
    app.dependency_overrides[get_conversion_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_defaults(client):
    body = client.get("/api/defaults").json()
    assert body["settings"]["compressionType"] == "lossless"
    assert body["profile"]["lossless"] is True
    assert body["profile"]["quality"] == 100


def test_convert_paths(client, image_file, output_dir):
    good = image_file("pic.png")
    resp = client.post("/api/convert", json={"paths": [str(good), 123, ""], "config": {"quality": 70}})
    assert resp.status_code == 200
    body = resp.json()
    results = body["results"]
    assert [r["success"] for r in results] == [True, False, False]
    assert results[0]["output"] == "pic.webp"
    assert results[0]["originalSize"] == good.stat().st_size
    assert results[1] == {"success": False, "original": "123", "originalSize": None, "error": "Invalid file path"}
    assert results[2]["original"] == "undefined"
    assert body["summary"]["succeeded"] == 1
    assert body["summary"]["failed"] == 2
    assert (output_dir / "pic.webp").is_file()


def test_convert_upload(client, output_dir):
    files = [
        ("files", ("drop.png", png_bytes(), "image/png")),
        ("files", ("junk.jpg", b"not a jpeg", "image/jpeg")),
    ]
    resp = client.post("/api/convert-upload", files=files, data={"config": json.dumps({"compressionType": "lossless"})})
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert [r["original"] for r in results] == ["drop.png", "junk.jpg"]
    assert results[0]["success"] is True
    assert results[0]["originalSize"] == len(png_bytes())
    assert results[1]["success"] is False
    assert "Codec error" in results[1]["error"]


def test_convert_upload_tolerates_bad_config(client):
    resp = client.post("/api/convert-upload", files=[("files", ("a.png", png_bytes(), "image/png"))], data={"config": "{oops"})
    assert resp.json()["results"][0]["success"] is True


def test_list_and_delete(client, image_file, output_dir):
    client.post("/api/convert", json={"paths": [str(image_file("keep.png"))]})
    images = client.get("/api/images").json()["images"]
    assert [i["name"] for i in images] == ["keep.webp"]
    assert images[0]["originalSize"] is not None

    assert client.delete("/api/images/keep.webp").json() == {"success": True}
    assert client.get("/api/images").json()["images"] == []

    missing = client.delete("/api/images/keep.webp").json()
    assert missing["success"] is False
    assert missing["error"]


def test_delete_rejects_other_files(client):
    assert client.delete("/api/images/notes.txt").status_code == 400


def test_empty_gallery_before_any_conversion(client):
    assert client.get("/api/images").json() == {"images": []}


def test_output_folder_is_created(client, output_dir):
    body = client.get("/api/output-folder").json()
    assert body["path"] == str(output_dir.resolve())
    assert output_dir.is_dir()


def test_convert_folder(client, tmp_path, output_dir):
    drop = tmp_path / "input"
    drop.mkdir()
    (drop / "scan.png").write_bytes(png_bytes())
    (drop / "torn.png").write_bytes(b"\x89PNG torn")
    body = client.post("/api/convert-folder", json={"config": {"autoCleanup": True}}).json()
    assert [r["original"] for r in body["results"]] == ["scan.png", "torn.png"]
    assert body["summary"]["message"] == "Converted 1 image(s), 1 failed."
    assert [p.name for p in drop.iterdir()] == ["torn.png"]
    assert (output_dir / "scan.webp").is_file()


def test_convert_folder_without_drop_folder(client):
    body = client.post("/api/convert-folder", json={}).json()
    assert body["results"] == []
    assert body["summary"]["total"] == 0
