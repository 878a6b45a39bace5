"""Spreadsheet and archive export tests."""
from __future__ import annotations

import csv
import zipfile

import pytest
from openpyxl import load_workbook

from vocab_engine.exporter import archive_entry_name, build_rows, export_csv, export_xlsx, export_zip
from vocab_engine.utils import normalize_word, sanitize_filename

from conftest import make_result


def _sheet_rows(path):
    wb = load_workbook(path)
    try:
        return [list(r) for r in wb.active.iter_rows(values_only=True)]
    finally:
        wb.close()


class TestNormalization:

    def test_underscores_and_whitespace(self):
        assert normalize_word("  red_fox_ ") == "red fox"

    def test_control_characters_are_dropped(self):
        assert normalize_word("cat\x07\x00 ") == "cat"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("a/b", "a_b"),
            ('x\\y:z*?"<>|', "x_y_z______"),
            ("Crème brûlée", "Crème brûlée"),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_filename(raw) == expected

    def test_entry_name_without_folder(self):
        assert archive_entry_name("a/b", folder="") == "a_b.jpg"


class TestSpreadsheet:

    def test_rows_use_display_order(self):
        results = [make_result("b", id=7), make_result("a_c", id=3)]
        assert build_rows(results) == [(1, "b"), (2, "a c")]

    def test_xlsx_header_and_rows(self, tmp_path):
        out = tmp_path / "v.xlsx"
        stats = export_xlsx([make_result("Red Fox"), make_result("a/b", id=2)], out)
        rows = _sheet_rows(out)
        assert rows == [["序号", "单词"], [1, "Red Fox"], [2, "a/b"]]
        assert stats.rows_written == 2

    def test_xlsx_english_header_and_sheet_name(self, tmp_path):
        out = tmp_path / "v.xlsx"
        export_xlsx([make_result("owl")], out, header_language="en", sheet_name="Words")
        wb = load_workbook(out)
        assert wb.sheetnames == ["Words"]
        assert [c.value for c in wb.active[1]] == ["Index", "Word"]

    def test_xlsx_illegal_control_characters_are_dropped(self, tmp_path):
        results = [make_result("a\x07b"), make_result("ok", id=2)]
        export_xlsx(results, tmp_path / "v.xlsx")
        export_zip(results, tmp_path / "v.zip")
        assert _sheet_rows(tmp_path / "v.xlsx")[1:] == [[1, "ab"], [2, "ok"]]
        with zipfile.ZipFile(tmp_path / "v.zip") as zf:
            assert "images/ab.jpg" in zf.namelist()

    def test_xlsx_formula_like_word_stays_text(self, tmp_path):
        out = tmp_path / "v.xlsx"
        export_xlsx([make_result("=1+1")], out)
        wb = load_workbook(out)
        cell = wb.active["B2"]
        assert cell.data_type == "s"
        assert cell.value == "=1+1"

    def test_unknown_header_language(self, tmp_path):
        with pytest.raises(ValueError):
            export_xlsx([], tmp_path / "v.xlsx", header_language="fr")

    def test_csv(self, tmp_path):
        out = tmp_path / "v.csv"
        export_csv([make_result("snow_man")], out, header_language="en")
        with out.open(encoding="utf-8-sig", newline="") as f:
            assert list(csv.reader(f)) == [["Index", "Word"], ["1", "snow man"]]


class TestArchive:

    def test_entry_names_match_words(self, tmp_path):
        out = tmp_path / "imgs.zip"
        export_zip([make_result("Red Fox"), make_result("a/b", id=2)], out)
        with zipfile.ZipFile(out) as zf:
            assert sorted(zf.namelist()) == ["images/Red Fox.jpg", "images/a_b.jpg"]
            assert zf.read("images/Red Fox.jpg") == b"jpeg:Red Fox"

    def test_duplicate_words_last_writer_wins(self, tmp_path):
        out = tmp_path / "imgs.zip"
        stats = export_zip(
            [make_result("cat", payload=b"first"), make_result("cat", id=2, payload=b"second")],
            out,
        )
        with zipfile.ZipFile(out) as zf:
            assert zf.namelist() == ["images/cat.jpg"]
            assert zf.read("images/cat.jpg") == b"second"
        assert stats.name_collisions == 1
        assert stats.entries_written == 1

    def test_results_without_payload_are_skipped(self, tmp_path):
        stats = export_zip([make_result("cat", payload=b"")], tmp_path / "imgs.zip")
        assert stats.entries_skipped_no_payload == 1
        assert stats.entries_written == 0

    def test_spreadsheet_and_archive_are_name_consistent(self, tmp_path):
        results = [make_result(w, id=i + 1) for i, w in enumerate(["Red Fox", "ice_cream ", "a/b", "Ö?"])]
        export_xlsx(results, tmp_path / "v.xlsx")
        export_zip(results, tmp_path / "v.zip")

        words = [r[1] for r in _sheet_rows(tmp_path / "v.xlsx")[1:]]
        with zipfile.ZipFile(tmp_path / "v.zip") as zf:
            names = zf.namelist()
        for w in words:
            assert names.count(archive_entry_name(w)) == 1
