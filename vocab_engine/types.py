from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from PIL import Image


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class QueuedFile:
    name: str
    path: Path
    mime_type: str
    status: FileStatus = FileStatus.PENDING
    progress: float = 0.0  # 0..100, file-local
    error: str | None = None
    local_count: int = 0  # results contributed by this file

    def to_dict(self) -> dict[str, object]:
        return {
            "file": self.name,
            "status": self.status.value,
            "progress": round(self.progress, 2),
            "error": self.error,
            "results": self.local_count,
        }


@dataclass(frozen=True)
class DetectedItem:
    word: str
    box_2d: tuple[float, float, float, float]  # ymin, xmin, ymax, xmax on a 0-1000 scale


@dataclass(frozen=True)
class PixelRect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CroppedImage:
    image: Image.Image  # display handle, closed on session reset
    payload: bytes  # JPEG


@dataclass(frozen=True)
class CropSuccess:
    index: int  # 0-based position in the recognizer response
    item: DetectedItem
    crop: CroppedImage


@dataclass(frozen=True)
class CropFailure:
    index: int
    item: DetectedItem
    reason: str


CropOutcome = Union[CropSuccess, CropFailure]


@dataclass(frozen=True)
class VocabResult:
    id: int  # 1-based position in the session sequence
    local_id: int  # 1-based card index inside the source image
    word: str
    source_name: str
    image: Image.Image
    payload: bytes
    box_2d: tuple[float, float, float, float]

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "local_id": self.local_id,
            "word": self.word,
            "source": self.source_name,
            "box_2d": list(self.box_2d),
            "size": list(self.image.size),
        }
