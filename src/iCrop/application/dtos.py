from dataclasses import dataclass


@dataclass(frozen=True)
class UploadResult:
    url: str
    full_path: str
