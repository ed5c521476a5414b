"""Export engine that rasterises the crop viewport into an output image."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Mapping, Optional, Union

import numpy as np
from PIL import Image, ImageColor

from ..config import (
    CONTENT_TYPES,
    DEFAULT_BACKGROUND,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_QUALITY,
    EXPORT_EPSILON,
    SUPPORTED_OUTPUT_FORMATS,
)
from ..errors import EncodeError, ExportError, InvalidSourceError
from .transform import Size, Transform, apply_points, bounding_box, build_matrix, inverse, rect_corners

_LOGGER = logging.getLogger(__name__)

Background = Union[str, tuple[int, ...], None]


@dataclass(frozen=True)
class ExportOptions:
    """Describe how the crop viewport should be rendered and encoded."""

    crop_width: float
    crop_height: float
    output_width: Optional[int] = None
    output_height: Optional[int] = None
    output_max: Optional[int] = None
    allow_padding: bool = False
    background: Background = DEFAULT_BACKGROUND
    epsilon: float = EXPORT_EPSILON
    device_pixel_ratio: float = 1.0
    output_format: str = DEFAULT_OUTPUT_FORMAT
    quality: int = DEFAULT_QUALITY

    @property
    def crop_size(self) -> Size:
        return Size(self.crop_width, self.crop_height)

    @classmethod
    def from_mapping(cls, crop: Size, values: Mapping[str, Any]) -> "ExportOptions":
        """Build options for *crop* from the ``export`` section of the settings."""

        return cls(
            crop_width=crop.width,
            crop_height=crop.height,
            output_width=values.get("output_width"),
            output_height=values.get("output_height"),
            output_max=values.get("output_max"),
            allow_padding=bool(values.get("allow_padding", False)),
            background=values.get("background", DEFAULT_BACKGROUND),
            epsilon=float(values.get("epsilon", EXPORT_EPSILON)),
            device_pixel_ratio=float(values.get("device_pixel_ratio", 1.0)),
            output_format=str(values.get("format", DEFAULT_OUTPUT_FORMAT)).upper(),
            quality=int(values.get("quality", DEFAULT_QUALITY)),
        )


@dataclass(frozen=True)
class SourceRect:
    """Bitmap region sampled by an export, in source pixels."""

    sx: int
    sy: int
    sw: int
    sh: int

    def as_box(self) -> tuple[int, int, int, int]:
        """Return the Pillow ``(left, upper, right, lower)`` box."""
        return (self.sx, self.sy, self.sx + self.sw, self.sy + self.sh)


@dataclass
class ExportResult:
    """Encoded crop together with the data needed to reproduce it."""

    data: bytes
    image: Image.Image
    source_rect: SourceRect
    output_size: tuple[int, int]
    output_format: str
    quality: int
    transform: Transform
    options: ExportOptions = field(repr=False)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES.get(self.output_format, "application/octet-stream")

    def metadata(self) -> dict[str, str]:
        """Return string metadata suitable for attaching to an upload."""

        width, height = self.output_size
        meta = {
            "width": str(width),
            "height": str(height),
            "type": self.content_type,
            "quality": str(self.quality),
        }
        for key, value in self.transform.as_mapping().items():
            meta[f"transform_{key}"] = repr(value)
        return meta


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def crop_quad_in_image(transform: Transform, crop: Size) -> np.ndarray:
    """Map the crop box corners back into image space.

    Raises :class:`~iCrop.errors.DegenerateTransformError` when the transform
    cannot be inverted.
    """

    inv = inverse(build_matrix(transform))
    return apply_points(inv, rect_corners(crop))


def compute_source_rect(transform: Transform, crop: Size, epsilon: float = EXPORT_EPSILON) -> SourceRect:
    """Return the axis-aligned source rectangle containing the crop quad.

    The rectangle is not counter-rotated: for ``rotation != 0`` it is the
    smallest upright box around the rotated crop, so it includes pixels that
    lie outside the visible crop.
    """

    min_x, min_y, max_x, max_y = bounding_box(crop_quad_in_image(transform, crop))
    sx = math.floor(min_x)
    sy = math.floor(min_y)
    sw = math.ceil(max_x - min_x + epsilon)
    sh = math.ceil(max_y - min_y + epsilon)
    return SourceRect(int(sx), int(sy), max(1, int(sw)), max(1, int(sh)))


def resolve_output_size(options: ExportOptions) -> tuple[int, int]:
    """Return the logical output size before the device pixel ratio is applied."""

    cw = float(options.crop_width)
    ch = float(options.crop_height)
    aspect = cw / ch
    width = options.output_width or 0
    height = options.output_height or 0
    if not width and not height:
        if options.output_max:
            if cw >= ch:
                width = options.output_max
                height = _round_half_up(options.output_max / aspect)
            else:
                height = options.output_max
                width = _round_half_up(options.output_max * aspect)
        else:
            width = _round_half_up(cw)
            height = _round_half_up(ch)
    elif not width:
        width = _round_half_up(height * aspect)
    elif not height:
        height = _round_half_up(width / aspect)
    return max(1, int(width)), max(1, int(height))


def surface_size(options: ExportOptions) -> tuple[int, int]:
    """Return the pixel size of the destination surface."""

    width, height = resolve_output_size(options)
    dpr = options.device_pixel_ratio or 1.0
    return max(1, _round_half_up(width * dpr)), max(1, _round_half_up(height * dpr))


def background_rgba(background: Background) -> Optional[tuple[int, int, int, int]]:
    """Return *background* as an RGBA tuple, or ``None`` for transparent."""

    if background is None:
        return None
    if isinstance(background, str):
        if background.strip().lower() == "transparent":
            return None
        try:
            return ImageColor.getcolor(background, "RGBA")  # type: ignore[return-value]
        except ValueError as exc:
            raise ExportError(f"Unsupported background colour: {background!r}") from exc
    values = tuple(int(v) for v in background)
    if len(values) == 3:
        return (*values, 255)
    if len(values) == 4:
        return values  # type: ignore[return-value]
    raise ExportError(f"Unsupported background colour: {background!r}")


def render_crop(bitmap: Image.Image, transform: Transform, options: ExportOptions) -> tuple[Image.Image, SourceRect]:
    """Draw the crop viewport of *bitmap* into a new RGBA surface."""

    if bitmap.width <= 0 or bitmap.height <= 0:
        raise InvalidSourceError("Source bitmap has no pixels; decode it before exporting")
    crop = options.crop_size
    if crop.is_empty():
        raise ExportError(f"Crop box must be non-empty, got {crop.width}x{crop.height}")

    rect = compute_source_rect(transform, crop, options.epsilon)
    size = surface_size(options)

    source = bitmap if bitmap.mode == "RGBA" else bitmap.convert("RGBA")
    # Pillow fills the area outside the bitmap with transparent pixels.
    region = source.crop(rect.as_box())
    drawn = region.resize(size, Image.Resampling.LANCZOS)

    if options.allow_padding:
        fill = background_rgba(options.background)
        surface = Image.new("RGBA", size, fill if fill is not None else (0, 0, 0, 0))
        surface.alpha_composite(drawn)
    else:
        surface = drawn
    return surface, rect


def encode_surface(
    surface: Image.Image,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
    quality: int = DEFAULT_QUALITY,
    background: Background = DEFAULT_BACKGROUND,
) -> bytes:
    """Compress *surface* into *output_format* bytes."""

    fmt = output_format.upper()
    if fmt == "JPG":
        fmt = "JPEG"
    if fmt not in SUPPORTED_OUTPUT_FORMATS:
        raise EncodeError(f"Unsupported output format: {output_format}")

    image = surface
    if fmt == "JPEG" and image.mode in ("RGBA", "LA", "P"):
        # JPEG has no alpha channel, so flatten onto the padding colour.
        rgba = image.convert("RGBA")
        fill = background_rgba(background) or (255, 255, 255, 255)
        flat = Image.new("RGBA", rgba.size, fill)
        flat.alpha_composite(rgba)
        image = flat.convert("RGB")

    buffer = BytesIO()
    try:
        image.save(buffer, format=fmt, quality=int(quality))
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Failed to encode {fmt}: {exc}") from exc
    return buffer.getvalue()


def export_cropped_image(bitmap: Image.Image, transform: Transform, options: ExportOptions) -> ExportResult:
    """Render and encode the crop described by *transform* and *options*."""

    surface, rect = render_crop(bitmap, transform, options)
    fmt = options.output_format.upper()
    if fmt == "JPG":
        fmt = "JPEG"
    data = encode_surface(surface, fmt, options.quality, options.background)
    _LOGGER.info(
        "Exported %sx%s %s crop from source rect %s (%d bytes)",
        surface.width,
        surface.height,
        fmt,
        rect.as_box(),
        len(data),
    )
    return ExportResult(
        data=data,
        image=surface,
        source_rect=rect,
        output_size=surface.size,
        output_format=fmt,
        quality=int(options.quality),
        transform=transform,
        options=options,
    )


__all__ = [
    "ExportOptions",
    "ExportResult",
    "SourceRect",
    "background_rgba",
    "compute_source_rect",
    "crop_quad_in_image",
    "encode_surface",
    "export_cropped_image",
    "render_crop",
    "resolve_output_size",
    "surface_size",
]
