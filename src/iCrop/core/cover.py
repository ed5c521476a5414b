"""Cover-fit helpers that keep a rotated image filling the crop viewport.

A *cover* fit scales the image until its rotated bounding box is at least as
large as the crop box on both axes.  The result may overflow the crop; the
opposite *contain* fit is never used here because it would expose empty
corners.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from ..config import GEOMETRY_EPSILON
from ..errors import GeometryError
from .transform import Size, Transform, bounding_box, build_matrix, transformed_corners

_LOGGER = logging.getLogger(__name__)


def rotated_extents(image: Size, theta: float) -> Size:
    """Return the axis-aligned size of *image* after rotating it by *theta*."""

    cos_t = abs(math.cos(theta))
    sin_t = abs(math.sin(theta))
    width = float(image.width)
    height = float(image.height)
    return Size(
        width=width * cos_t + height * sin_t,
        height=width * sin_t + height * cos_t,
    )


def min_cover_scale(image: Size, crop: Size, theta: float) -> float:
    """Return the smallest scale whose rotated bounding box covers *crop*."""

    if image.is_empty() or crop.is_empty():
        raise GeometryError(
            f"Cannot cover a {crop.width}x{crop.height} crop with a {image.width}x{image.height} image"
        )
    extents = rotated_extents(image, theta)
    sx = float(crop.width) / extents.width
    sy = float(crop.height) / extents.height
    return max(sx, sy)


def fit_to_crop(image: Size, crop: Size, theta: float) -> Transform:
    """Return the minimal cover transform centring *image* inside *crop*.

    The image centre ``(w/2, h/2)`` lands on the crop centre.  The function is
    pure, so calling it twice with the same arguments gives the same result.
    """

    scale = min_cover_scale(image, crop, theta)
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    px, py = image.center
    cx, cy = crop.center
    tx = cx - scale * (cos_t * px - sin_t * py)
    ty = cy - scale * (sin_t * px + cos_t * py)
    return Transform(scale=scale, rotation=theta, tx=tx, ty=ty)


def image_bounds_in_viewport(transform: Transform, image: Size) -> tuple[float, float, float, float]:
    """Return the viewport AABB ``(min_x, min_y, max_x, max_y)`` of the image."""
    return bounding_box(transformed_corners(build_matrix(transform), image))


def covers_crop(
    transform: Transform,
    image: Size,
    crop: Size,
    eps: float = GEOMETRY_EPSILON,
) -> bool:
    """Return ``True`` when the transformed image AABB contains the crop box."""

    min_x, min_y, max_x, max_y = image_bounds_in_viewport(transform, image)
    return (
        min_x <= eps
        and min_y <= eps
        and max_x >= float(crop.width) - eps
        and max_y >= float(crop.height) - eps
    )


def _axis_shift(low: float, high: float, extent: float, padding: float) -> float:
    """Return the shift along one axis that makes ``[low, high]`` contain ``[0, extent]``.

    The shift overshoots by at most *padding* but never far enough to expose
    the opposite edge.  A span narrower than *extent* cannot cover, so it is
    centred instead.
    """

    if high - low < extent:
        return (extent - (low + high)) * 0.5
    if low > 0.0:
        return max(-low - padding, extent - high)
    if high < extent:
        return min(extent - high + padding, -low)
    return 0.0


def clamp_pan_to_cover(
    transform: Transform,
    image: Size,
    crop: Size,
    allow_padding: bool,
    padding_px: float = 0.0,
) -> Transform:
    """Shift *transform* so the image covers the whole crop box.

    The image corners are mapped into the viewport, the minimal viewport
    shift restoring cover is computed per axis and added to the translation.
    ``(tx, ty)`` is the last factor of ``T . R . S``, so a viewport shift maps
    one-to-one onto it.  Nothing happens when *allow_padding* is set.
    """

    if allow_padding:
        return transform

    min_x, min_y, max_x, max_y = image_bounds_in_viewport(transform, image)
    padding = max(0.0, float(padding_px))
    dx = _axis_shift(min_x, max_x, float(crop.width), padding)
    dy = _axis_shift(min_y, max_y, float(crop.height), padding)
    if dx == 0.0 and dy == 0.0:
        return transform

    _LOGGER.debug("Pan clamp shifted image by (%.4f, %.4f)", dx, dy)
    return transform.with_changes(tx=transform.tx + dx, ty=transform.ty + dy)


def reanchor(transform: Transform, image_point: tuple[float, float], viewport_point: tuple[float, float]) -> Transform:
    """Return *transform* translated so *image_point* maps onto *viewport_point*.

    Scale and rotation are left untouched; this is how zoom and rotation keep
    the content under the pointer (or the crop centre) stationary.
    """

    px, py = image_point
    vx, vy = viewport_point
    cos_t = math.cos(transform.rotation)
    sin_t = math.sin(transform.rotation)
    s = transform.scale
    tx = vx - s * (cos_t * px - sin_t * py)
    ty = vy - s * (sin_t * px + cos_t * py)
    return transform.with_changes(tx=tx, ty=ty)


def _ratio(width: float, height: float, value: object) -> float:
    if height == 0.0:
        raise ValueError(f"Invalid aspect ratio: {value!r}")
    return width / height


def parse_aspect(value: str | float | Sequence[float], original: Size | None = None) -> float:
    """Return the numeric aspect ratio described by *value*.

    Accepts ``"W:H"`` strings, ``"original"`` (requires *original*), a
    ``(w, h)`` pair or a plain number.
    """

    if isinstance(value, (int, float)):
        ratio = float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if text == "original":
            if original is None or original.is_empty():
                raise ValueError("The 'original' aspect needs the image size")
            ratio = original.aspect
        else:
            left, sep, right = text.partition(":")
            if not sep:
                ratio = float(text)
            else:
                ratio = _ratio(float(left), float(right), value)
    else:
        w, h = value
        ratio = _ratio(float(w), float(h), value)
    if not math.isfinite(ratio) or ratio <= 0.0:
        raise ValueError(f"Invalid aspect ratio: {value!r}")
    return ratio


def crop_size_for_aspect(container: Size, aspect: float) -> Size:
    """Return the largest crop box of *aspect* that fits inside *container*."""

    width = min(float(container.width), float(container.height) * aspect)
    return Size(width=width, height=width / aspect)


__all__ = [
    "clamp_pan_to_cover",
    "covers_crop",
    "crop_size_for_aspect",
    "fit_to_crop",
    "image_bounds_in_viewport",
    "min_cover_scale",
    "parse_aspect",
    "reanchor",
    "rotated_extents",
]
