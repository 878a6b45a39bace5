from __future__ import annotations

from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from vocab_engine.errors import TransportError
from vocab_engine.job import init_job_outputs, job_paths
from vocab_engine.types import DetectedItem, VocabResult

# Three cards on a 1000x1000 sheet, reading order; boxes are [ymin, xmin, ymax, xmax].
CARD_BOXES = [
    (100.0, 100.0, 300.0, 300.0),
    (100.0, 400.0, 300.0, 600.0),
    (100.0, 700.0, 300.0, 900.0),
]
CARD_COLORS = [(255, 0, 0), (0, 160, 0), (0, 0, 255)]


def make_sheet(size: tuple[int, int] = (1000, 1000)) -> Image.Image:
    img = Image.new("RGB", size, color=(255, 255, 255))
    draw = ImageDraw.Draw(img)
    w, h = size
    for (ymin, xmin, ymax, xmax), color in zip(CARD_BOXES, CARD_COLORS):
        draw.rectangle(
            [xmin / 1000 * w, ymin / 1000 * h, xmax / 1000 * w - 1, ymax / 1000 * h - 1],
            fill=color,
        )
    return img


def png_bytes(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def make_result(word: str, id: int = 1, payload: bytes | None = None) -> VocabResult:
    img = Image.new("RGB", (4, 4), color=(0, 0, 0))
    return VocabResult(
        id=id,
        local_id=id,
        word=word,
        source_name="sheet.png",
        image=img,
        payload=payload if payload is not None else f"jpeg:{word}".encode("utf-8"),
        box_2d=(0.0, 0.0, 10.0, 10.0),
    )


class FakeRecognizer:
    """Returns canned items per file name; records every call."""

    def __init__(self, responses: dict[str, list[DetectedItem] | Exception]):
        self.responses = responses
        self.calls: list[str] = []

    def recognize(self, data: bytes, mime_type: str, *, name: str = "") -> list[DetectedItem]:
        self.calls.append(name)
        resp = self.responses.get(name, TransportError(f"no response for {name}"))
        if isinstance(resp, Exception):
            raise resp
        return list(resp)


@pytest.fixture
def sheet_bytes() -> bytes:
    return png_bytes(make_sheet())


@pytest.fixture
def sheet_dir(tmp_path: Path) -> Path:
    """Folder with two sheets (a.png, b.png) and one non-image file."""
    d = tmp_path / "sheets"
    d.mkdir()
    make_sheet().save(d / "a.png")
    make_sheet().save(d / "b.png")
    (d / "notes.txt").write_text("not an image", encoding="utf-8")
    return d


@pytest.fixture
def paths(tmp_path: Path):
    p = job_paths(tmp_path / "job")
    init_job_outputs(p)
    return p


@pytest.fixture
def three_items() -> list[DetectedItem]:
    return [
        DetectedItem(word="Red Fox", box_2d=CARD_BOXES[0]),
        DetectedItem(word="green_apple", box_2d=CARD_BOXES[1]),
        DetectedItem(word=" Blue Whale ", box_2d=CARD_BOXES[2]),
    ]
