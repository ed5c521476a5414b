"""Custom exception hierarchy for iCrop."""

from __future__ import annotations


class ICropError(Exception):
    """Base class for all custom errors raised by iCrop."""


# --- Geometry errors ---

class GeometryError(ICropError):
    """Base class for failures inside the transform math."""


class DegenerateTransformError(GeometryError):
    """Raised when an affine matrix is too close to singular to invert."""


# --- Export errors ---

class ExportError(ICropError):
    """Base class for failures while rendering a crop."""


class InvalidSourceError(ExportError):
    """Raised when the source bitmap has no pixels (not decoded yet)."""


class EncodeError(ExportError):
    """Raised when the rendered surface cannot be compressed."""


# --- Collaborator errors ---

class DecodeError(ICropError):
    """Raised when a source cannot be decoded into a bitmap."""


class UploadError(ICropError):
    """Raised when the blob uploader fails to persist an export."""


# --- Settings errors ---

class SettingsError(ICropError):
    """Base class for settings related failures."""


class SettingsLoadError(SettingsError):
    """Raised when the settings file cannot be parsed or loaded."""


class SettingsValidationError(SettingsError):
    """Raised when settings data fails schema validation."""
