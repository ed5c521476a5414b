import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Optional

from .base import UseCase, UseCaseRequest, UseCaseResponse
from ..interfaces import BitmapSource, IBitmapDecoder, IBlobUploader
from ...config import FILE_SUFFIXES
from ...core.export import ExportOptions, ExportResult, export_cropped_image
from ...core.transform import Transform
from ...errors import ICropError


@dataclass(frozen=True)
class CommitCropRequest(UseCaseRequest):
    source: Optional[BitmapSource] = None
    transform: Transform = Transform()
    options: Optional[ExportOptions] = None
    destination: str = ""
    on_progress: Optional[Callable[[float], None]] = None


@dataclass(frozen=True)
class CommitCropResponse(UseCaseResponse):
    url: Optional[str] = None
    full_path: Optional[str] = None
    result: Optional[ExportResult] = None


def destination_with_suffix(destination: str, output_format: str) -> str:
    """Append the format's file suffix when *destination* has none."""

    path = PurePosixPath(destination)
    if path.suffix:
        return destination
    return destination + FILE_SUFFIXES.get(output_format.upper(), "")


class CommitCropUseCase(UseCase[CommitCropRequest, CommitCropResponse]):
    """Decode the source, export the committed crop and upload the result."""

    def __init__(self, decoder: IBitmapDecoder, uploader: IBlobUploader):
        self._decoder = decoder
        self._uploader = uploader
        self._logger = logging.getLogger(__name__)

    def execute(self, request: CommitCropRequest) -> CommitCropResponse:
        if request.source is None or request.options is None or not request.destination:
            return CommitCropResponse(success=False, error="Source, options and destination are required")

        try:
            bitmap = self._decoder.decode(request.source)
            result = export_cropped_image(bitmap, request.transform, request.options)
            destination = destination_with_suffix(request.destination, result.output_format)
            uploaded = self._uploader.upload(
                result.data,
                destination,
                content_type=result.content_type,
                metadata=result.metadata(),
                on_progress=request.on_progress,
            )
        except ICropError as exc:
            self._logger.error("Crop commit to %s failed: %s", request.destination, exc)
            return CommitCropResponse(success=False, error=str(exc))

        self._logger.info("Committed crop to %s", uploaded.url)
        return CommitCropResponse(url=uploaded.url, full_path=uploaded.full_path, result=result)
