from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from PIL import Image

from cms_admin.cli import images as cli
from cms_admin.config import StorageConfig
from cms_admin.storage.local import LocalStorage


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for key in ("CMS_ENV", "CMS_STORAGE_PATH", "CMS_AUTO_FIX_IMAGES"):
        monkeypatch.delenv(key, raising=False)
    Image.new("RGB", (120, 80), "green").save(tmp_path / "upload.png")
    return tmp_path


def _run(workspace: Path, *argv: str) -> None:
    cli.main(["--index", str(workspace / "index.json"), "--root", str(workspace / "storage"), *argv])


def _storage(workspace: Path) -> LocalStorage:
    config = StorageConfig(server_path=workspace / "storage")
    return LocalStorage.from_index(config, workspace / "index.json")


def test_parse_effect() -> None:
    effect = cli.parse_effect("thumbnail:40x30:inset")
    assert (effect.name, effect.width, effect.height, effect.mode) == ("thumbnail", 40, 30, "inset")
    with pytest.raises(ValueError):
        cli.parse_effect("thumbnail")


def test_upload_and_apply_filter(workspace: Path) -> None:
    _run(workspace, "add-filter", "1", "small", "thumbnail:20x20")
    _run(workspace, "add-filter", "2", "strip", "crop:120x10")
    _run(workspace, "upload", str(workspace / "upload.png"), "--filter", "small")

    storage = _storage(workspace)
    [image] = storage.images()
    assert image.resolution_width == 20
    assert image.file_exists

    _run(workspace, "apply-filter", str(image.id), "strip")
    storage = _storage(workspace)
    strip = storage.find_image(image.file_id, 2)
    assert strip is not None
    assert (strip.resolution_width, strip.resolution_height) == (120, 10)


def test_unknown_filter_exits_with_error(workspace: Path) -> None:
    _run(workspace, "add-filter", "1", "small", "thumbnail:20x20")
    _run(workspace, "upload", str(workspace / "upload.png"), "--filter", "small")
    image_id = json.loads((workspace / "index.json").read_text(encoding="utf-8"))["images"][0]["id"]

    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, "apply-filter", str(image_id), "missing")
    assert excinfo.value.code == 1


def test_fix_missing_regenerates_files(workspace: Path) -> None:
    _run(workspace, "add-filter", "1", "small", "thumbnail:20x20")
    _run(workspace, "upload", str(workspace / "upload.png"), "--filter", "small")
    [image] = _storage(workspace).images()
    Path(image.server_source).unlink()

    _run(workspace, "fix-missing")
    assert Path(image.server_source).is_file()


def test_non_image_upload_keeps_file_record(workspace: Path) -> None:
    _run(workspace, "add-filter", "1", "small", "thumbnail:20x20")
    (workspace / "doc.pdf").write_bytes(b"%PDF-1.4 not an image")

    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, "upload", str(workspace / "doc.pdf"), "--filter", "small")
    assert excinfo.value.code == 1

    storage = _storage(workspace)
    file_item = storage.get_file(1)
    assert file_item is not None
    assert file_item.name == "doc.pdf"
    assert file_item.file_exists
    assert storage.images() == []


@pytest.mark.parametrize("effect", ["blur:10x10", "thumbnail:10x10:stretch"])
def test_add_filter_rejects_unknown_effects(workspace: Path, effect: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, "add-filter", "1", "blurry", effect)
    assert excinfo.value.code == 1
    assert _storage(workspace).get_filters_array_item("blurry") is None


def test_add_filter_rejects_duplicate_id(workspace: Path) -> None:
    _run(workspace, "add-filter", "1", "small", "thumbnail:20x20")
    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, "add-filter", "1", "big", "thumbnail:200x200")
    assert excinfo.value.code == 1

    storage = _storage(workspace)
    assert storage.get_filters_array_item("big") is None
    assert storage.get_filter_by_id(1).identifier == "small"


def test_apply_filter_reports_missing_file(workspace: Path, caplog: pytest.LogCaptureFixture) -> None:
    index = {
        "files": [],
        "images": [{"id": 1, "file_id": 5, "filter_id": 2}],
        "filters": [
            {"id": 1, "identifier": "small", "effects": [{"name": "thumbnail", "params": {"width": 20, "height": 20}}]}
        ],
    }
    (workspace / "index.json").write_text(json.dumps(index), encoding="utf-8")

    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as excinfo:
        _run(workspace, "apply-filter", "1", "small")
    assert excinfo.value.code == 1
    assert "file 5 is missing" in caplog.text
    assert "Unknown filter" not in caplog.text
