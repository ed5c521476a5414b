"""Schema helpers for the cropper settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator, FormatChecker
from PIL import ImageColor

from ..config import (
    DEFAULT_BACKGROUND,
    DEFAULT_MAX_ZOOM,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_PADDING_PX,
    DEFAULT_QUALITY,
    EXPORT_EPSILON,
    NORMALIZE_ROTATION,
    SUPPORTED_OUTPUT_FORMATS,
    ZOOM_IN_STEP,
    ZOOM_OUT_STEP,
)

_POSITIVE_INT_OR_NULL = {"type": ["integer", "null"], "minimum": 1}

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "iCrop/settings.schema.json",
    "type": "object",
    "required": ["schema", "cropper", "export"],
    "properties": {
        "schema": {"const": "iCrop/settings@1"},
        "cropper": {
            "type": "object",
            "properties": {
                "max_zoom": {"type": "number", "exclusiveMinimum": 0},
                "zoom_in_step": {"type": "number", "exclusiveMinimum": 1},
                "zoom_out_step": {"type": "number", "exclusiveMinimum": 0, "exclusiveMaximum": 1},
                "padding_px": {"type": "number", "minimum": 0},
                "allow_padding": {"type": "boolean"},
                "normalize_rotation": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "export": {
            "type": "object",
            "properties": {
                "format": {"type": "string", "enum": list(SUPPORTED_OUTPUT_FORMATS)},
                "quality": {"type": "integer", "minimum": 1, "maximum": 100},
                "output_width": _POSITIVE_INT_OR_NULL,
                "output_height": _POSITIVE_INT_OR_NULL,
                "output_max": _POSITIVE_INT_OR_NULL,
                "background": {"type": "string", "format": "colour"},
                "allow_padding": {"type": "boolean"},
                "epsilon": {"type": "number", "minimum": 0},
                "device_pixel_ratio": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "iCrop/settings@1",
    "cropper": {
        "max_zoom": DEFAULT_MAX_ZOOM,
        "zoom_in_step": ZOOM_IN_STEP,
        "zoom_out_step": ZOOM_OUT_STEP,
        "padding_px": DEFAULT_PADDING_PX,
        "allow_padding": False,
        "normalize_rotation": NORMALIZE_ROTATION,
    },
    "export": {
        "format": DEFAULT_OUTPUT_FORMAT,
        "quality": DEFAULT_QUALITY,
        "output_width": None,
        "output_height": None,
        "output_max": None,
        "background": DEFAULT_BACKGROUND,
        "allow_padding": False,
        "epsilon": EXPORT_EPSILON,
        "device_pixel_ratio": 1.0,
    },
}

_format_checker = FormatChecker()


@_format_checker.checks("colour", raises=ValueError)
def _is_colour(instance: object) -> bool:
    """Accept ``"transparent"`` or any colour string Pillow can parse."""

    if not isinstance(instance, str) or instance.strip().lower() == "transparent":
        return True
    ImageColor.getrgb(instance)
    return True


_validator = Draft202012Validator(SETTINGS_SCHEMA, format_checker=_format_checker)

_SECTIONS = ("cropper", "export")


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                target = merged.setdefault(key, {})
                for sub_key, sub_value in value.items():
                    target[sub_key] = sub_value
                continue
            # A non-mapping section is left for the validator to reject.
            merged[key] = value
    if isinstance(merged.get("export"), dict) and isinstance(merged["export"].get("format"), str):
        merged["export"]["format"] = merged["export"]["format"].upper()
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
