"""Transform math, cover fitting, interaction and export."""

from .controller import CropController, CropperConfig
from .cover import clamp_pan_to_cover, fit_to_crop, min_cover_scale, rotated_extents
from .export import ExportOptions, ExportResult, SourceRect, export_cropped_image
from .transform import Mat2D, Size, Transform, apply, build_matrix, inverse, multiply

__all__ = [
    "CropController",
    "CropperConfig",
    "ExportOptions",
    "ExportResult",
    "Mat2D",
    "Size",
    "SourceRect",
    "Transform",
    "apply",
    "build_matrix",
    "clamp_pan_to_cover",
    "export_cropped_image",
    "fit_to_crop",
    "inverse",
    "min_cover_scale",
    "multiply",
    "rotated_extents",
]
