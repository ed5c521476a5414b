"""Affine matrix helpers shared by the crop controller and the exporter.

Two coordinate systems are involved:

**Image space**: pixels of the source bitmap before any transform, origin at the
top-left corner of the (EXIF-corrected) image.

**Viewport space**: device-independent pixels inside the crop box, origin at
its top-left corner.

The canonical image -> viewport mapping is::

    M = Translate(tx, ty) . Rotate(rotation) . Scale(scale)

so ``(tx, ty)`` is where the image origin lands in the viewport.  Matrices are
stored as the six coefficients ``(a, b, c, d, e, f)`` of::

    [ a  c  e ]
    [ b  d  f ]
    [ 0  0  1 ]
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import NamedTuple

import numpy as np

from ..config import DET_EPSILON, GEOMETRY_EPSILON
from ..errors import DegenerateTransformError


class Mat2D(NamedTuple):
    """Coefficients of a 2x3 affine matrix."""

    a: float
    b: float
    c: float
    d: float
    e: float
    f: float


IDENTITY = Mat2D(1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


@dataclass(frozen=True)
class Size:
    """Width/height pair used for both bitmaps and crop viewports."""

    width: float
    height: float

    @property
    def aspect(self) -> float:
        return float(self.width) / float(self.height) if self.height else 0.0

    @property
    def center(self) -> tuple[float, float]:
        return (float(self.width) * 0.5, float(self.height) * 0.5)

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class Transform:
    """Pan/zoom/rotate state mapping image space into viewport space."""

    scale: float = 1.0
    rotation: float = 0.0
    tx: float = 0.0
    ty: float = 0.0

    def with_changes(self, **changes: float) -> "Transform":
        """Return a copy of the transform with *changes* applied."""
        return replace(self, **changes)

    def as_mapping(self) -> dict[str, float]:
        return {
            "scale": float(self.scale),
            "rotation": float(self.rotation),
            "tx": float(self.tx),
            "ty": float(self.ty),
        }


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp *value* into ``[minimum, maximum]``."""
    return max(minimum, min(maximum, value))


def nearly_equal(a: float, b: float, eps: float = GEOMETRY_EPSILON) -> bool:
    return abs(a - b) <= eps


def multiply(A: Mat2D, B: Mat2D) -> Mat2D:
    """Return ``A . B``; applying the result equals applying *B* then *A*."""

    a1, b1, c1, d1, e1, f1 = A
    a2, b2, c2, d2, e2, f2 = B
    return Mat2D(
        a1 * a2 + c1 * b2,
        b1 * a2 + d1 * b2,
        a1 * c2 + c1 * d2,
        b1 * c2 + d1 * d2,
        a1 * e2 + c1 * f2 + e1,
        b1 * e2 + d1 * f2 + f1,
    )


def apply(M: Mat2D, x: float, y: float) -> tuple[float, float]:
    """Map the point ``(x, y)`` through *M*."""

    a, b, c, d, e, f = M
    return (a * x + c * y + e, b * x + d * y + f)


def apply_points(M: Mat2D, points: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    """Map an ``(N, 2)`` array of points through *M* in one pass."""

    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    a, b, c, d, e, f = M
    linear = np.array([[a, c], [b, d]], dtype=np.float64)
    return pts @ linear.T + np.array([e, f], dtype=np.float64)


def determinant(M: Mat2D) -> float:
    return M.a * M.d - M.b * M.c


def inverse(M: Mat2D) -> Mat2D:
    """Return the inverse of *M* using the closed-form 2x2 adjugate.

    Raises
    ------
    DegenerateTransformError
        If ``|det(M)|`` is below :data:`~iCrop.config.DET_EPSILON`.
    """

    a, b, c, d, e, f = M
    det = a * d - b * c
    if abs(det) < DET_EPSILON:
        raise DegenerateTransformError(f"Matrix is not invertible (det={det!r})")
    inv_det = 1.0 / det
    ia = d * inv_det
    ib = -b * inv_det
    ic = -c * inv_det
    id_ = a * inv_det
    ie = -(ia * e + ic * f)
    if_ = -(ib * e + id_ * f)
    return Mat2D(ia, ib, ic, id_, ie, if_)


def mat_scale(s: float) -> Mat2D:
    return Mat2D(s, 0.0, 0.0, s, 0.0, 0.0)


def mat_rotate(theta: float) -> Mat2D:
    c = math.cos(theta)
    s = math.sin(theta)
    return Mat2D(c, s, -s, c, 0.0, 0.0)


def mat_translate(tx: float, ty: float) -> Mat2D:
    return Mat2D(1.0, 0.0, 0.0, 1.0, tx, ty)


def build_matrix(transform: Transform) -> Mat2D:
    """Return ``Translate . Rotate . Scale`` for *transform*."""

    return multiply(
        multiply(mat_translate(transform.tx, transform.ty), mat_rotate(transform.rotation)),
        mat_scale(transform.scale),
    )


def rect_corners(size: Size) -> np.ndarray:
    """Return the four corners of ``[0, w] x [0, h]`` in clockwise order."""

    w = float(size.width)
    h = float(size.height)
    return np.array([(0.0, 0.0), (w, 0.0), (w, h), (0.0, h)], dtype=np.float64)


def transformed_corners(M: Mat2D, size: Size) -> np.ndarray:
    """Return the corners of a ``size`` rectangle mapped through *M*."""
    return apply_points(M, rect_corners(size))


def bounding_box(points: Iterable[Sequence[float]] | np.ndarray) -> tuple[float, float, float, float]:
    """Return ``(min_x, min_y, max_x, max_y)`` of *points*."""

    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return (float(min_x), float(min_y), float(max_x), float(max_y))


__all__ = [
    "IDENTITY",
    "Mat2D",
    "Size",
    "Transform",
    "apply",
    "apply_points",
    "bounding_box",
    "build_matrix",
    "clamp",
    "determinant",
    "inverse",
    "mat_rotate",
    "mat_scale",
    "mat_translate",
    "multiply",
    "nearly_equal",
    "rect_corners",
    "transformed_corners",
]
