from __future__ import annotations

import csv
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from openpyxl import Workbook

from .types import VocabResult
from .utils import normalize_word, sanitize_filename

HEADERS = {
    "zh": ("序号", "单词"),
    "en": ("Index", "Word"),
}
IMAGE_EXTENSION = ".jpg"


@dataclass
class ExportStats:
    results_seen: int = 0
    rows_written: int = 0
    entries_written: int = 0
    entries_skipped_no_payload: int = 0
    name_collisions: int = 0


def header_for(language: str) -> tuple[str, str]:
    try:
        return HEADERS[language]
    except KeyError:
        raise ValueError(f"unknown header_language: {language}") from None


def build_rows(results: Sequence[VocabResult]) -> list[tuple[int, str]]:
    """(display number, export word) per result, in sequence order."""
    return [(i + 1, normalize_word(r.word)) for i, r in enumerate(results)]


def archive_entry_name(word: str, *, folder: str = "images", replacement: str = "_") -> str:
    name = sanitize_filename(normalize_word(word), replacement) + IMAGE_EXTENSION
    return f"{folder}/{name}" if folder else name


def export_xlsx(
    results: Sequence[VocabResult],
    out_path: str | Path,
    *,
    header_language: str = "zh",
    sheet_name: str = "Vocabulary",
) -> ExportStats:
    """Write a single-sheet workbook: header row, then one row per result."""
    stats = ExportStats(results_seen=len(results))
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws.append(list(header_for(header_language)))
    for row in build_rows(results):
        ws.append(list(row))
        # words like "=1+1" stay text, not formulas
        ws.cell(row=ws.max_row, column=2).data_type = "s"
        stats.rows_written += 1

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(out_path)
    return stats


def export_csv(
    results: Sequence[VocabResult],
    out_path: str | Path,
    *,
    header_language: str = "zh",
) -> ExportStats:
    stats = ExportStats(results_seen=len(results))
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    # utf-8-sig so spreadsheet apps open CJK headers correctly
    with out_path.open("w", newline="", encoding="utf-8-sig") as f:
        writer = csv.writer(f)
        writer.writerow(header_for(header_language))
        for row in build_rows(results):
            writer.writerow(row)
            stats.rows_written += 1
    return stats


def export_zip(
    results: Sequence[VocabResult],
    out_path: str | Path,
    *,
    folder: str = "images",
    replacement: str = "_",
) -> ExportStats:
    """Write one `<folder>/<word>.jpg` entry per result.

    Duplicate words share one entry; the last result wins.
    """
    stats = ExportStats(results_seen=len(results))
    entries: dict[str, bytes] = {}
    for r in results:
        if not r.payload:
            stats.entries_skipped_no_payload += 1
            continue
        name = archive_entry_name(r.word, folder=folder, replacement=replacement)
        if name in entries:
            stats.name_collisions += 1
        entries[name] = r.payload

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, payload in entries.items():
            zf.writestr(name, payload)
            stats.entries_written += 1
    return stats
