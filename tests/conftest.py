import io
import os
import sys
from pathlib import Path

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Allow running the suite from a checkout without installing the package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from iCrop.core.transform import Size  # noqa: E402


def make_quadrant_image(width: int = 200, height: int = 100) -> Image.Image:
    """Return an RGB image whose four quadrants have distinct colours."""

    img = Image.new("RGB", (width, height), (255, 0, 0))
    half_w = width // 2
    half_h = height // 2
    img.paste((0, 255, 0), (half_w, 0, width, half_h))
    img.paste((0, 0, 255), (0, half_h, half_w, height))
    img.paste((255, 255, 0), (half_w, half_h, width, height))
    return img


def jpeg_bytes_with_orientation(width: int, height: int, orientation: int) -> bytes:
    img = Image.new("RGB", (width, height), "red")
    exif = img.getexif()
    exif[0x0112] = orientation
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    return buf.getvalue()


@pytest.fixture
def quadrant_image() -> Image.Image:
    return make_quadrant_image()


@pytest.fixture
def landscape() -> Size:
    return Size(1000, 500)


@pytest.fixture
def square_crop() -> Size:
    return Size(400, 400)
