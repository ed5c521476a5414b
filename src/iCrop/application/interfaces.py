from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Optional, Union

from PIL import Image

from .dtos import UploadResult

BitmapSource = Union[str, Path, bytes, BinaryIO, Image.Image]


class IBitmapDecoder(ABC):
    """Interface for turning an encoded image into an orientation-corrected bitmap."""

    @abstractmethod
    def decode(self, source: BitmapSource) -> Image.Image:
        """
        Decode *source* and apply its EXIF orientation.
        The returned bitmap's width/height are the upright dimensions.
        """
        pass


class IBlobUploader(ABC):
    """Interface for persisting an encoded export."""

    @abstractmethod
    def upload(
        self,
        data: bytes,
        path: str,
        *,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> UploadResult:
        """Store *data* under *path* and return where it can be fetched from."""
        pass
