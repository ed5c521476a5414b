"""Worker that renders and encodes crop exports off the UI thread."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from PIL import Image
from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

from ...core.export import ExportOptions, ExportResult, export_cropped_image
from ...core.transform import Transform

_LOGGER = logging.getLogger(__name__)

# Workers started by ``start_export``, held until one of their signals fires.
_IN_FLIGHT: set["ExportWorker"] = set()
_IN_FLIGHT_LOCK = threading.Lock()


class ExportWorkerSignals(QObject):
    """Signals exposed by :class:`ExportWorker`.

    The runnable lives on a global thread pool, so the signal container is a
    separate ``QObject`` owned by whoever started the job.
    """

    exportFinished = Signal(object)
    """Emitted with the :class:`~iCrop.core.export.ExportResult` once encoding is done."""

    exportFailed = Signal(str)
    """Emitted with a readable message when rendering or encoding fails."""


class ExportWorker(QRunnable):
    """Render the committed crop of *bitmap* without blocking the caller.

    There is no cancellation: a caller that no longer wants the result simply
    ignores the signal.
    """

    def __init__(self, bitmap: Image.Image, transform: Transform, options: ExportOptions) -> None:
        super().__init__()
        self._bitmap = bitmap
        self._transform = transform
        self._options = options
        self.signals = ExportWorkerSignals()

    @property
    def transform(self) -> Transform:
        return self._transform

    def run(self) -> None:  # type: ignore[override]
        try:
            result = export_cropped_image(self._bitmap, self._transform, self._options)
        except Exception as exc:
            # Any failure is reported through exportFailed.
            _LOGGER.exception("Crop export failed")
            self.signals.exportFailed.emit(str(exc))
            return
        self.signals.exportFinished.emit(result)


def _release(worker: ExportWorker) -> None:
    with _IN_FLIGHT_LOCK:
        _IN_FLIGHT.discard(worker)


def in_flight_count() -> int:
    """Return how many exports started with :func:`start_export` are pending."""

    with _IN_FLIGHT_LOCK:
        return len(_IN_FLIGHT)


def start_export(
    bitmap: Image.Image,
    transform: Transform,
    options: ExportOptions,
    *,
    on_finished: Callable[[ExportResult], None] | None = None,
    on_failed: Callable[[str], None] | None = None,
    pool: QThreadPool | None = None,
) -> ExportWorker:
    """Queue an export on *pool* (the global pool by default) and return the worker.

    The worker is kept alive until it reports back, so callers may drop the
    returned object.
    """

    worker = ExportWorker(bitmap, transform, options)
    worker.setAutoDelete(False)
    if on_finished is not None:
        worker.signals.exportFinished.connect(on_finished)
    if on_failed is not None:
        worker.signals.exportFailed.connect(on_failed)
    worker.signals.exportFinished.connect(lambda _result: _release(worker))
    worker.signals.exportFailed.connect(lambda _message: _release(worker))
    with _IN_FLIGHT_LOCK:
        _IN_FLIGHT.add(worker)
    (pool or QThreadPool.globalInstance()).start(worker)
    return worker


__all__ = ["ExportWorker", "ExportWorkerSignals", "in_flight_count", "start_export"]
