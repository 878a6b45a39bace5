from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def ensure_dir(path: str | Path) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def normalize_word(word: str) -> str:
    """Export form of a word: underscores become spaces, control characters
    that xlsx cannot store are dropped, outer whitespace is dropped.

    The same form is used for the spreadsheet cell and the archive entry name
    so both outputs stay name-consistent.
    """
    return ILLEGAL_CHARACTERS_RE.sub("", word.replace("_", " ")).strip()


def sanitize_filename(name: str, replacement: str = "_") -> str:
    """Replace path-unsafe characters (\\ / : * ? " < > |).

    Notes:
    - Case and non-ASCII text are kept as-is (archive names mirror the spreadsheet).
    - No hash suffix: identical words map to identical names.
    """
    return _UNSAFE_FILENAME_CHARS.sub(replacement, name)


def write_json(path: str | Path, data: Any) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def append_jsonl(path: str | Path, obj: dict[str, Any]) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(obj, ensure_ascii=False) + "\n")


def load_json(path: str | Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
