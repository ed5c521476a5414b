"""Settings file management with validation and change notifications."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any

from jsonschema import ValidationError
from PySide6.QtCore import QObject, QStandardPaths, Signal

from ..core.controller import CropperConfig
from ..core.export import ExportOptions
from ..core.transform import Size
from ..errors import SettingsLoadError, SettingsValidationError
from ..utils.jsonio import read_json, write_json
from .schema import DEFAULT_SETTINGS, merge_with_defaults


def default_settings_path() -> Path:
    """Return ``iCrop/settings.json`` inside the user's configuration directory."""

    base = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.GenericConfigLocation)
    root = Path(base) if base else Path.home() / ".config"
    return root / "iCrop" / "settings.json"


def _read_payload(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        payload = read_json(path)
    except (OSError, ValueError) as exc:
        raise SettingsLoadError(f"Cannot read {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise SettingsLoadError(f"{path} does not contain a JSON object")
    return payload


class SettingsManager(QObject):
    """Load, validate and persist cropper settings."""

    settingsChanged = Signal(str, object)

    def __init__(self, path: Path | None = None) -> None:
        super().__init__()
        self._path = path
        self._data: dict[str, Any] = deepcopy(DEFAULT_SETTINGS)

    @property
    def path(self) -> Path:
        return self._path or default_settings_path()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def load(self) -> None:
        """Read the settings file, fill in defaults and write the result back."""

        self._path = self.path
        self._data = self._validated(_read_payload(self._path))
        self._write()

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return the value for *key*, supporting dotted access for nested keys."""

        target: Any = self._data
        for part in key.split("."):
            if not isinstance(target, dict) or part not in target:
                return default
            target = target[part]
        return target

    def set(self, key: str, value: Any) -> None:
        """Update *key* with *value*, validate and persist the change."""

        if isinstance(value, Path):
            value = str(value)
        candidate = deepcopy(self._data)
        parts = key.split(".")
        target: dict[str, Any] = candidate
        for part in parts[:-1]:
            branch = target.get(part)
            if not isinstance(branch, dict):
                branch = {}
                target[part] = branch
            target = branch
        target[parts[-1]] = value
        self._data = self._validated(candidate)
        self._write()
        self.settingsChanged.emit(key, value)

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------
    def cropper_config(self) -> CropperConfig:
        return CropperConfig.from_mapping(self._data.get("cropper", {}))

    def export_options(self, crop: Size) -> ExportOptions:
        return ExportOptions.from_mapping(crop, self._data.get("export", {}))

    # ------------------------------------------------------------------
    # Internal utilities
    # ------------------------------------------------------------------
    @staticmethod
    def _validated(payload: dict[str, Any] | None) -> dict[str, Any]:
        try:
            return merge_with_defaults(payload)
        except ValidationError as exc:
            raise SettingsValidationError(exc.message) from exc

    def _write(self) -> None:
        path = self.path
        self._path = path
        write_json(path, self._data)


__all__ = ["SettingsManager", "default_settings_path"]
