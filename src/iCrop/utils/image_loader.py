"""Helpers for decoding source images into upright Pillow bitmaps."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from ..application.interfaces import IBitmapDecoder
from ..errors import DecodeError

_LOGGER = logging.getLogger(__name__)

_ORIENTATION_TAG = 0x0112

Source = Union[str, Path, bytes, BinaryIO, Image.Image]


def _open(source: Source) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        return Image.open(BytesIO(bytes(source)))
    if isinstance(source, (str, Path)):
        return Image.open(Path(source))
    return Image.open(source)


def load_bitmap(source: Source) -> Image.Image:
    """Return the decoded bitmap for *source* with EXIF orientation applied.

    The pixels are loaded eagerly so the returned image no longer depends on
    the underlying file handle.  An already decoded bitmap is returned as is.
    """

    if isinstance(source, Image.Image):
        return source
    try:
        with _open(source) as img:
            upright = ImageOps.exif_transpose(img)
            upright.load()
            # ``exif_transpose`` hands back the original object when no
            # rotation is needed; copy it so closing the file is safe.
            if upright is img:
                upright = img.copy()
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        _LOGGER.exception("Pillow failed to decode image source")
        raise DecodeError(f"Cannot decode image: {exc}") from exc
    return upright


def read_exif_orientation(source: Source) -> Optional[int]:
    """Return the EXIF orientation tag of a JPEG *source*, if any.

    Non-JPEG formats report ``None`` even when they carry EXIF data.
    """

    if isinstance(source, Image.Image):
        if source.format != "JPEG":
            return None
        value = source.getexif().get(_ORIENTATION_TAG)
        return int(value) if value is not None else None
    try:
        with _open(source) as img:
            if img.format != "JPEG":
                return None
            value = img.getexif().get(_ORIENTATION_TAG)
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        raise DecodeError(f"Cannot read image header: {exc}") from exc
    return int(value) if value is not None else None


class PillowBitmapDecoder(IBitmapDecoder):
    """Decode bitmaps with Pillow, normalising EXIF orientation."""

    def decode(self, source: Source) -> Image.Image:
        return load_bitmap(source)


__all__ = ["PillowBitmapDecoder", "load_bitmap", "read_exif_orientation"]
