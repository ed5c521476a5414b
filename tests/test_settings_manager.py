from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest

pytest.importorskip("PySide6", reason="PySide6 is required for settings tests", exc_type=ImportError)
pytest.importorskip("PySide6.QtTest", reason="Qt test helpers not available", exc_type=ImportError)

from PySide6.QtCore import QCoreApplication
from PySide6.QtTest import QSignalSpy

from iCrop.core.transform import Size
from iCrop.errors import SettingsLoadError, SettingsValidationError
from iCrop.settings import DEFAULT_SETTINGS, SettingsManager, default_settings_path, merge_with_defaults


@pytest.fixture(scope="module")
def qapp() -> QCoreApplication:
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


def test_load_writes_defaults(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    manager = SettingsManager(path=settings_path)
    manager.load()
    assert settings_path.exists()
    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert stored == DEFAULT_SETTINGS
    assert manager.get("cropper.max_zoom") == 8.0
    assert manager.get("export.format") == "JPEG"
    assert manager.get("missing.key", "fallback") == "fallback"


def test_set_persists_and_emits(tmp_path: Path, qapp: QCoreApplication) -> None:
    settings_path = tmp_path / "settings.json"
    manager = SettingsManager(path=settings_path)
    manager.load()
    spy = QSignalSpy(manager.settingsChanged)

    manager.set("export.quality", 75)
    qapp.processEvents()

    assert spy.count() == 1
    assert manager.get("export.quality") == 75
    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert stored["export"]["quality"] == 75
    assert stored["export"]["format"] == "JPEG"


def test_invalid_value_is_rejected_and_not_persisted(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    manager = SettingsManager(path=settings_path)
    manager.load()
    with pytest.raises(SettingsValidationError):
        manager.set("cropper.zoom_in_step", 0.5)
    assert manager.get("cropper.zoom_in_step") == pytest.approx(1.05)
    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert stored["cropper"]["zoom_in_step"] == pytest.approx(1.05)


def test_partial_file_is_merged_with_defaults(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text(
        json.dumps({"schema": "iCrop/settings@1", "cropper": {"allow_padding": True}, "export": {"format": "png"}}),
        encoding="utf-8",
    )
    manager = SettingsManager(path=settings_path)
    manager.load()

    cfg = manager.cropper_config()
    assert cfg.allow_padding is True
    assert cfg.max_zoom == 8.0

    options = manager.export_options(Size(320, 180))
    assert options.output_format == "PNG"
    assert options.crop_size == Size(320, 180)
    assert options.quality == 92


def test_corrupt_file_raises_load_error(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SettingsLoadError):
        SettingsManager(path=settings_path).load()


def test_unknown_cropper_key_fails_validation(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    settings_path.write_text(json.dumps({"cropper": {"speed": 3}}), encoding="utf-8")
    with pytest.raises(SettingsValidationError):
        SettingsManager(path=settings_path).load()


def test_merge_with_defaults_normalises_format() -> None:
    merged = merge_with_defaults({"export": {"format": "webp"}})
    assert merged["export"]["format"] == "WEBP"
    assert merged["cropper"] == DEFAULT_SETTINGS["cropper"]


def test_default_settings_path_honours_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    if os.name == "nt" or sys.platform == "darwin":
        pytest.skip("XDG paths only apply on Linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert default_settings_path() == tmp_path / "iCrop" / "settings.json"


def test_background_must_be_a_colour(tmp_path: Path) -> None:
    settings_path = tmp_path / "settings.json"
    manager = SettingsManager(path=settings_path)
    manager.load()

    with pytest.raises(SettingsValidationError):
        manager.set("export.background", "notacolour")
    assert manager.get("export.background") == "transparent"

    manager.set("export.background", "#336699")
    assert manager.get("export.background") == "#336699"
    manager.set("export.background", "Transparent")
    assert manager.export_options(Size(10, 10)).background == "Transparent"
