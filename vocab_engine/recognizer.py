from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Protocol

from google import genai
from google.genai import types

from .config import EngineConfig, resolve_api_key
from .errors import ConfigError, ResponseParseError, TransportError
from .types import DetectedItem

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_USER_PROMPT = "Extract all vocabulary items as requested."

SYSTEM_INSTRUCTION = """
You are an expert OCR and object detection model.
Analyze the provided vocabulary sheet image which contains a grid of cards.
Each card consists of an illustration and a word below it.

Tasks:
1. Identify every individual card in the sheet.
2. Extract the vocabulary word associated with each card.
3. Provide the normalized bounding box [ymin, xmin, ymax, xmax] of ONLY the illustration part (the graphic area above the word).
4. Return the items in natural reading order (left-to-right, then top-to-bottom).

Bounding boxes must be in scale 0-1000.
""".strip()

RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "items": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "word": types.Schema(type=types.Type.STRING),
                    "box_2d": types.Schema(
                        type=types.Type.ARRAY,
                        items=types.Schema(type=types.Type.NUMBER),
                        description="[ymin, xmin, ymax, xmax]",
                    ),
                },
                required=["word", "box_2d"],
            ),
        )
    },
    required=["items"],
)


class Recognizer(Protocol):
    def recognize(self, data: bytes, mime_type: str, *, name: str = "") -> list[DetectedItem]:
        ...


def parse_items(text: str) -> list[DetectedItem]:
    """Parse a `{items: [{word, box_2d}, ...]}` body into DetectedItems.

    Only shape is checked: `word` must be a string and `box_2d` a list of 4
    finite numbers (json.loads lets NaN/Infinity through). Item order is kept
    as returned.
    """
    try:
        data = json.loads(text or "")
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"response is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ResponseParseError("response is not a JSON object")

    raw_items = data.get("items", [])
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise ResponseParseError("items is not a list")

    items: list[DetectedItem] = []
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ResponseParseError(f"items[{i}]: not an object")
        word = raw.get("word")
        box = raw.get("box_2d")
        if not isinstance(word, str):
            raise ResponseParseError(f"items[{i}]: word must be a string")
        if not isinstance(box, (list, tuple)) or len(box) != 4:
            raise ResponseParseError(f"items[{i}]: box_2d must have 4 numbers")
        try:
            coords = tuple(float(v) for v in box)
        except (TypeError, ValueError) as e:
            raise ResponseParseError(f"items[{i}]: box_2d is not numeric") from e
        if not all(math.isfinite(v) for v in coords):
            raise ResponseParseError(f"items[{i}]: box_2d has non-finite values")
        items.append(DetectedItem(word=word, box_2d=coords))  # type: ignore[arg-type]
    return items


@dataclass
class GeminiRecognizer:
    """Recognition adapter backed by the Gemini API (google-genai).

    One blocking round trip per image; no retry and no timeout.
    """

    api_key: str
    model: str = DEFAULT_MODEL
    temperature: float = 0.0
    user_prompt: str = DEFAULT_USER_PROMPT
    _client: Any | None = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def recognize(self, data: bytes, mime_type: str, *, name: str = "") -> list[DetectedItem]:
        try:
            resp = self._get_client().models.generate_content(
                model=self.model,
                contents=[
                    types.Content(
                        role="user",
                        parts=[
                            types.Part.from_bytes(data=data, mime_type=mime_type),
                            types.Part.from_text(text=self.user_prompt),
                        ],
                    ),
                ],
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    temperature=self.temperature,
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                ),
            )
        except Exception as e:
            raise TransportError(f"recognition request failed: {e}") from e
        return parse_items(resp.text or "")


@dataclass(frozen=True)
class MockedRecognizer:
    """Reads `<stem>.json` responses from a fixture directory instead of calling the API."""

    directory: Path

    def recognize(self, data: bytes, mime_type: str, *, name: str = "") -> list[DetectedItem]:
        path = Path(self.directory) / f"{Path(name).stem}.json"
        if not path.is_file():
            raise TransportError(f"mocked response missing: {path.name}")
        return parse_items(path.read_text(encoding="utf-8"))


def make_recognizer(cfg: EngineConfig, *, env: Mapping[str, str] | None = None) -> GeminiRecognizer:
    """Resolve the credential once and build the Gemini adapter."""
    key = resolve_api_key(env)
    if not key.present:
        raise ConfigError("API key not configured (set GEMINI_API_KEY, GOOGLE_API_KEY or API_KEY)")
    rec = cfg.recognition
    return GeminiRecognizer(
        api_key=str(key.value),
        model=str(rec.get("model", DEFAULT_MODEL)),
        temperature=float(rec.get("temperature", 0.0)),
        user_prompt=str(rec.get("user_prompt", DEFAULT_USER_PROMPT)),
    )
