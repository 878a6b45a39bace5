from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator


def guess_mime_type(path: str | Path) -> str | None:
    mime, _ = mimetypes.guess_type(str(path))
    return mime


def is_image_mime(mime_type: str | None) -> bool:
    return bool(mime_type) and str(mime_type).startswith("image/")


@dataclass
class IngestStats:
    files_seen: int = 0
    files_accepted: int = 0
    files_skipped_non_image: int = 0


def _expand(inputs: Iterable[str | Path]) -> Iterator[Path]:
    for raw in inputs:
        p = Path(raw)
        if p.is_dir():
            yield from sorted(c for c in p.iterdir() if c.is_file())
        elif p.is_file():
            yield p
        else:
            raise ValueError(f"input not found: {p}")


def iter_image_files(
    inputs: Iterable[str | Path],
    stats: IngestStats | None = None,
) -> Iterator[tuple[Path, str]]:
    """Yield (path, mime_type) for every image input.

    Folders are expanded in name order; files keep the order given.
    Anything whose guessed MIME type is not image/* is skipped.
    """
    stats = stats if stats is not None else IngestStats()
    for path in _expand(inputs):
        stats.files_seen += 1
        mime = guess_mime_type(path)
        if not is_image_mime(mime):
            stats.files_skipped_non_image += 1
            continue
        stats.files_accepted += 1
        yield path, str(mime)
