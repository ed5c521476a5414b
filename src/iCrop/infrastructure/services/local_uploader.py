from itertools import count
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Optional
import logging

from ...application.dtos import UploadResult
from ...application.interfaces import IBlobUploader
from ...errors import UploadError
from ...utils.jsonio import write_json

LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def next_free_path(target: Path) -> Path:
    """Return *target*, or the first ``"stem (n).ext"`` sibling that does not exist yet."""

    if not target.exists():
        return target
    siblings = (target.with_name(f"{target.stem} ({n}){target.suffix}") for n in count(1))
    return next(path for path in siblings if not path.exists())


class LocalDirectoryUploader(IBlobUploader):
    """
    Stores exports below a root directory, standing in for a remote blob store.
    Existing files are never overwritten; metadata goes to a ``.meta.json`` sidecar.
    """

    def __init__(self, root: Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.name:
            raise UploadError(f"Upload path must be relative to the store root: {path!r}")
        return self._root.joinpath(*relative.parts)

    def upload(
        self,
        data: bytes,
        path: str,
        *,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> UploadResult:
        target = next_free_path(self._resolve(path))
        total = len(data)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("xb") as handle:
                written = 0
                for offset in range(0, total, _CHUNK_SIZE):
                    chunk = data[offset:offset + _CHUNK_SIZE]
                    handle.write(chunk)
                    written += len(chunk)
                    if on_progress is not None and total:
                        on_progress(written / total)
            sidecar = {"content_type": content_type, "size": total, "metadata": dict(metadata or {})}
            write_json(target.with_name(target.name + ".meta.json"), sidecar)
        except OSError as exc:
            raise UploadError(f"Failed to store {target}: {exc}") from exc

        full_path = target.relative_to(self._root).as_posix()
        LOGGER.info("Stored %d bytes at %s", total, target)
        return UploadResult(url=target.resolve().as_uri(), full_path=full_path)
