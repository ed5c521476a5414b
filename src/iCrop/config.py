"""Default configuration values for iCrop."""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Transform math
# ---------------------------------------------------------------------------

# Matrices whose determinant falls within this distance of zero are treated as
# singular.  ``det(M) == scale ** 2`` for the crop transform.
DET_EPSILON: Final[float] = 1e-6

# Lowest scale the controller will ever publish.  Kept above ``sqrt(DET_EPSILON)``
# so the export inverse never trips the singularity check.
MIN_SCALE_FLOOR: Final[float] = 0.002

# Tolerance used by the cover checks and by ``nearly_equal``.
GEOMETRY_EPSILON: Final[float] = 1e-6

# ---------------------------------------------------------------------------
# Interaction
# ---------------------------------------------------------------------------

DEFAULT_MAX_ZOOM: Final[float] = 8.0

# Wheel zoom is multiplicative so that each tick feels the same at any
# magnification.
ZOOM_IN_STEP: Final[float] = 1.05
ZOOM_OUT_STEP: Final[float] = 0.95

# Extra overlap the pan clamp leaves past a crop edge when it has to push the
# image back into place.
DEFAULT_PADDING_PX: Final[float] = 0.5

NORMALIZE_ROTATION: Final[bool] = True

# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

EXPORT_EPSILON: Final[float] = 0.01
DEFAULT_OUTPUT_FORMAT: Final[str] = "JPEG"
DEFAULT_QUALITY: Final[int] = 92
DEFAULT_BACKGROUND: Final[str] = "transparent"
SUPPORTED_OUTPUT_FORMATS: Final[tuple[str, ...]] = ("JPEG", "PNG", "WEBP")

CONTENT_TYPES: Final[dict[str, str]] = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

FILE_SUFFIXES: Final[dict[str, str]] = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "WEBP": ".webp",
}
