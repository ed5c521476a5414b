"""Interaction controller that owns the live crop transform.

Every intent (zoom, pan, rotate, fit) is reduced by a pure function of
``(previous transform, intent, image size, crop size, config)``.  The
:class:`CropController` serialises those reductions behind a lock and only
publishes a transform after the cover invariant has been re-established, so a
reader never observes a half-updated state.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

from .. import config as defaults
from ..errors import GeometryError, InvalidSourceError
from .cover import clamp_pan_to_cover, fit_to_crop, min_cover_scale, reanchor
from .transform import Size, Transform, apply, build_matrix, clamp, inverse

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CropperConfig:
    """Tunables for interactive zoom/pan/rotate behaviour."""

    max_zoom: float = defaults.DEFAULT_MAX_ZOOM
    zoom_in_step: float = defaults.ZOOM_IN_STEP
    zoom_out_step: float = defaults.ZOOM_OUT_STEP
    padding_px: float = defaults.DEFAULT_PADDING_PX
    allow_padding: bool = False
    normalize_rotation: bool = defaults.NORMALIZE_ROTATION

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "CropperConfig":
        """Build a config from the ``cropper`` section of the settings file."""

        base = cls()
        return cls(
            max_zoom=float(values.get("max_zoom", base.max_zoom)),
            zoom_in_step=float(values.get("zoom_in_step", base.zoom_in_step)),
            zoom_out_step=float(values.get("zoom_out_step", base.zoom_out_step)),
            padding_px=float(values.get("padding_px", base.padding_px)),
            allow_padding=bool(values.get("allow_padding", base.allow_padding)),
            normalize_rotation=bool(values.get("normalize_rotation", base.normalize_rotation)),
        )


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FitIntent:
    """Reset to the minimal centred cover fit for the current rotation."""


@dataclass(frozen=True)
class ZoomIntent:
    scale: float
    anchor: Optional[tuple[float, float]] = None


@dataclass(frozen=True)
class ZoomByIntent:
    """Multiply the current scale by *factor*."""

    factor: float
    anchor: Optional[tuple[float, float]] = None


@dataclass(frozen=True)
class WheelIntent:
    delta: float
    anchor: Optional[tuple[float, float]] = None


@dataclass(frozen=True)
class PanIntent:
    dx: float
    dy: float


@dataclass(frozen=True)
class RotateIntent:
    delta: float


@dataclass(frozen=True)
class RotateToIntent:
    """Rotate to the absolute angle *theta*."""

    theta: float


@dataclass(frozen=True)
class ClampIntent:
    """Re-run the pan clamp without changing anything else."""


Intent = Union[
    FitIntent, ZoomIntent, ZoomByIntent, WheelIntent, PanIntent, RotateIntent, RotateToIntent, ClampIntent
]


# ---------------------------------------------------------------------------
# Pure reducers
# ---------------------------------------------------------------------------


def scale_bounds(rotation: float, image: Size, crop: Size, cfg: CropperConfig) -> tuple[float, float]:
    """Return the ``(minimum, maximum)`` scale allowed at *rotation*."""

    lower = defaults.MIN_SCALE_FLOOR
    if not cfg.allow_padding:
        lower = max(lower, min_cover_scale(image, crop, rotation))
    # The cover bound wins when a tiny image cannot reach it within max_zoom.
    upper = max(lower, float(cfg.max_zoom))
    return lower, upper


def normalize_angle(theta: float) -> float:
    """Fold *theta* into ``[-pi, pi]``."""
    return math.remainder(theta, math.tau)


def _settle(transform: Transform, image: Size, crop: Size, cfg: CropperConfig) -> Transform:
    return clamp_pan_to_cover(transform, image, crop, cfg.allow_padding, cfg.padding_px)


def _rescale(
    transform: Transform,
    scale: float,
    anchor: tuple[float, float],
) -> Transform:
    image_point = apply(inverse(build_matrix(transform)), *anchor)
    return reanchor(transform.with_changes(scale=scale), image_point, anchor)


def reduce_fit(transform: Transform, image: Size, crop: Size, cfg: CropperConfig) -> Transform:
    rotation = normalize_angle(transform.rotation) if cfg.normalize_rotation else transform.rotation
    fitted = fit_to_crop(image, crop, rotation)
    lower, upper = scale_bounds(rotation, image, crop, cfg)
    scale = clamp(fitted.scale, lower, upper)
    if scale != fitted.scale:
        fitted = reanchor(fitted.with_changes(scale=scale), image.center, crop.center)
    return _settle(fitted, image, crop, cfg)


def reduce_zoom(
    transform: Transform,
    scale: float,
    image: Size,
    crop: Size,
    cfg: CropperConfig,
    anchor: Optional[tuple[float, float]] = None,
) -> Transform:
    lower, upper = scale_bounds(transform.rotation, image, crop, cfg)
    target = clamp(float(scale), lower, upper)
    point = anchor if anchor is not None else crop.center
    return _settle(_rescale(transform, target, point), image, crop, cfg)


def reduce_wheel(
    transform: Transform,
    delta: float,
    image: Size,
    crop: Size,
    cfg: CropperConfig,
    anchor: Optional[tuple[float, float]] = None,
) -> Transform:
    if delta == 0:
        return transform
    step = cfg.zoom_in_step if delta < 0 else cfg.zoom_out_step
    return reduce_zoom(transform, transform.scale * step, image, crop, cfg, anchor)


def reduce_pan(transform: Transform, dx: float, dy: float, image: Size, crop: Size, cfg: CropperConfig) -> Transform:
    moved = transform.with_changes(tx=transform.tx + dx, ty=transform.ty + dy)
    return _settle(moved, image, crop, cfg)


def reduce_rotate(transform: Transform, delta: float, image: Size, crop: Size, cfg: CropperConfig) -> Transform:
    """Rotate around the crop centre, then restore the zoom bound and cover."""

    pivot = crop.center
    image_point = apply(inverse(build_matrix(transform)), *pivot)
    rotation = transform.rotation + delta
    if cfg.normalize_rotation:
        rotation = normalize_angle(rotation)
    rotated = reanchor(transform.with_changes(rotation=rotation), image_point, pivot)

    lower, upper = scale_bounds(rotation, image, crop, cfg)
    scale = clamp(rotated.scale, lower, upper)
    if scale != rotated.scale:
        _LOGGER.debug("Rotation raised scale from %.5f to %.5f", rotated.scale, scale)
        rotated = _rescale(rotated, scale, pivot)
    return _settle(rotated, image, crop, cfg)


def reduce(transform: Transform, intent: Intent, image: Size, crop: Size, cfg: CropperConfig) -> Transform:
    """Return the next valid transform after applying *intent*."""

    if isinstance(intent, FitIntent):
        return reduce_fit(transform, image, crop, cfg)
    if isinstance(intent, ZoomIntent):
        return reduce_zoom(transform, intent.scale, image, crop, cfg, intent.anchor)
    if isinstance(intent, ZoomByIntent):
        return reduce_zoom(transform, transform.scale * intent.factor, image, crop, cfg, intent.anchor)
    if isinstance(intent, WheelIntent):
        return reduce_wheel(transform, intent.delta, image, crop, cfg, intent.anchor)
    if isinstance(intent, PanIntent):
        return reduce_pan(transform, intent.dx, intent.dy, image, crop, cfg)
    if isinstance(intent, RotateIntent):
        return reduce_rotate(transform, intent.delta, image, crop, cfg)
    if isinstance(intent, RotateToIntent):
        return reduce_rotate(transform, intent.theta - transform.rotation, image, crop, cfg)
    if isinstance(intent, ClampIntent):
        return _settle(transform, image, crop, cfg)
    raise TypeError(f"Unsupported intent: {intent!r}")


def _check_sizes(image: Size, crop: Size) -> None:
    if image.is_empty():
        raise InvalidSourceError(
            f"Image size {image.width}x{image.height} has no pixels; decode the bitmap first"
        )
    if crop.is_empty():
        raise GeometryError(f"Crop box must be non-empty, got {crop.width}x{crop.height}")


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class CropController:
    """Own the crop transform and apply user intents one at a time."""

    def __init__(
        self,
        image_size: Size,
        crop_size: Size,
        cfg: CropperConfig | None = None,
        *,
        initial_rotation: float = 0.0,
        on_change: Callable[[Transform], None] | None = None,
    ) -> None:
        _check_sizes(image_size, crop_size)
        self._image = image_size
        self._crop = crop_size
        self._config = cfg or CropperConfig()
        self._on_change = on_change
        self._lock = threading.Lock()
        self._transform = reduce_fit(
            Transform(rotation=initial_rotation), self._image, self._crop, self._config
        )

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def transform(self) -> Transform:
        with self._lock:
            return self._transform

    @property
    def image_size(self) -> Size:
        return self._image

    @property
    def crop_size(self) -> Size:
        return self._crop

    @property
    def config(self) -> CropperConfig:
        return self._config

    def scale_limits(self) -> tuple[float, float]:
        with self._lock:
            return scale_bounds(self._transform.rotation, self._image, self._crop, self._config)

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------
    def dispatch(self, intent: Intent) -> Transform:
        """Reduce *intent* against the current state and publish the result."""
        return self._commit(intent)

    def _commit(
        self,
        intent: Intent,
        *,
        image_size: Size | None = None,
        crop_size: Size | None = None,
    ) -> Transform:
        with self._lock:
            previous = self._transform
            if image_size is not None:
                self._image = image_size
            if crop_size is not None:
                self._crop = crop_size
            self._transform = reduce(previous, intent, self._image, self._crop, self._config)
            current = self._transform
        if current != previous and self._on_change is not None:
            self._on_change(current)
        return current

    def fit(self) -> Transform:
        return self.dispatch(FitIntent())

    def set_scale(self, scale: float, anchor: Optional[tuple[float, float]] = None) -> Transform:
        return self.dispatch(ZoomIntent(scale, anchor))

    def zoom_by(self, factor: float, anchor: Optional[tuple[float, float]] = None) -> Transform:
        return self.dispatch(ZoomByIntent(factor, anchor))

    def wheel_zoom(self, delta: float, anchor: Optional[tuple[float, float]] = None) -> Transform:
        return self.dispatch(WheelIntent(delta, anchor))

    def pan_by(self, dx: float, dy: float) -> Transform:
        return self.dispatch(PanIntent(dx, dy))

    def rotate_by(self, delta: float) -> Transform:
        return self.dispatch(RotateIntent(delta))

    def set_rotation(self, theta: float) -> Transform:
        return self.dispatch(RotateToIntent(theta))

    def clamp_pan(self) -> Transform:
        return self.dispatch(ClampIntent())

    def replay(self, intents: Iterable[Intent]) -> Transform:
        """Apply *intents* in order and return the final transform."""

        current = self.transform
        for intent in intents:
            current = self.dispatch(intent)
        return current

    # ------------------------------------------------------------------
    # Geometry changes
    # ------------------------------------------------------------------
    def set_crop_size(self, crop_size: Size) -> Transform:
        """Swap the crop box and refit, keeping the current rotation."""

        _check_sizes(self._image, crop_size)
        _LOGGER.debug("Crop box changed to %sx%s; refitting", crop_size.width, crop_size.height)
        return self._commit(FitIntent(), crop_size=crop_size)

    def set_image_size(self, image_size: Size) -> Transform:
        """Swap the source bitmap size (a new image was loaded) and refit."""

        _check_sizes(image_size, self._crop)
        return self._commit(FitIntent(), image_size=image_size)


__all__ = [
    "ClampIntent",
    "CropController",
    "CropperConfig",
    "FitIntent",
    "Intent",
    "PanIntent",
    "RotateIntent",
    "RotateToIntent",
    "WheelIntent",
    "ZoomByIntent",
    "ZoomIntent",
    "normalize_angle",
    "reduce",
    "reduce_fit",
    "reduce_pan",
    "reduce_rotate",
    "reduce_wheel",
    "reduce_zoom",
    "scale_bounds",
]
