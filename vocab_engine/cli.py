from __future__ import annotations

import argparse
import csv
import zipfile
from dataclasses import replace
from pathlib import Path

from openpyxl import load_workbook

from .config import EngineConfig, load_config
from .exporter import archive_entry_name, export_csv, export_xlsx, export_zip
from .ingest import IngestStats
from .job import JobPaths, create_job_dirs, init_job_outputs, job_meta, job_paths, new_job_id
from .pipeline import BatchOrchestrator, Session
from .recognizer import MockedRecognizer, make_recognizer
from .types import FileStatus, QueuedFile
from .writer import JobWriter

DEFAULT_CONFIG_PATH = Path("config") / "default.json"
SPREADSHEET_FORMATS = ("xlsx", "csv")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="vocab_engine")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Extract cards from vocabulary sheet images")
    run.add_argument("--input", required=True, nargs="+", help="Image files and/or folders of images")
    run.add_argument("--workspace", default="./workspace", help="Workspace root")
    run.add_argument("--config", default=None, help=f"Config path (default: {DEFAULT_CONFIG_PATH} if present)")
    run.add_argument("--model", default=None, help="Recognition model id (overrides config)")
    run.add_argument("--empty-policy", default=None, choices=["error", "complete"], help="How to treat sheets with no detected cards")
    run.add_argument("--format", default="xlsx", choices=SPREADSHEET_FORMATS, help="Spreadsheet format")
    run.add_argument(
        "--use-mocked-recognizer",
        default=None,
        help="Directory containing <image stem>.json recognizer responses (skips the API call)",
    )

    validate = sub.add_parser("validate", help="Validate job outputs and spreadsheet/archive consistency")
    validate.add_argument("--job-dir", required=True, help="Job directory (workspace/jobs/<job_id>)")
    validate.add_argument("--config", default=None, help="Config used for the run")

    return p


def _load_cfg(config_path: str | None) -> EngineConfig:
    if config_path:
        return load_config(config_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return load_config(None)


def _export_names(cfg: EngineConfig, fmt: str) -> dict[str, str]:
    return {
        "spreadsheet_name": f"{cfg.export.get('spreadsheet_name', 'Vocabulary_List')}.{fmt}",
        "archive_name": str(cfg.export.get("archive_name", "Extracted_Images.zip")),
    }


def _print_status(qf: QueuedFile) -> None:
    if qf.status is FileStatus.COMPLETED:
        print(f"[completed] {qf.name} results={qf.local_count}")
    elif qf.status is FileStatus.ERROR:
        print(f"[error] {qf.name}: {qf.error}")


def cmd_run(args: argparse.Namespace) -> int:
    cfg = _load_cfg(args.config)
    if args.model:
        cfg = replace(cfg, recognition={**cfg.recognition, "model": args.model})
    if args.empty_policy:
        cfg = replace(cfg, batch={**cfg.batch, "empty_result_policy": args.empty_policy})

    session = Session()
    ingest_stats = IngestStats()
    try:
        session.add_files(args.input, ingest_stats)
    except ValueError as e:
        print(f"input_error: {e}")
        return 1
    if ingest_stats.files_skipped_non_image:
        print(f"skipped_non_image={ingest_stats.files_skipped_non_image}")
    if not session.files:
        print("no image inputs")
        return 1

    job_id = new_job_id()
    paths = create_job_dirs(args.workspace, job_id, **_export_names(cfg, args.format))
    init_job_outputs(paths)

    if args.use_mocked_recognizer:
        mocked_dir = Path(args.use_mocked_recognizer)
        provider = lambda: MockedRecognizer(mocked_dir)  # noqa: E731
    else:
        provider = lambda: make_recognizer(cfg)  # noqa: E731

    orchestrator = BatchOrchestrator(session, provider, paths, cfg, on_progress=_print_status)
    report = orchestrator.process_all()

    meta = job_meta(job_id, [str(i) for i in args.input], {"model": cfg.recognition.get("model")})
    writer = JobWriter(paths=paths)

    if report.global_error:
        print(f"config_error: {report.global_error}")
        writer.write_final(job_meta=meta, files=session.files, results=session.results, metrics=report)
        return 2

    _write_exports(session, paths, cfg, args.format)
    writer.write_final(job_meta=meta, files=session.files, results=session.results, metrics=report)

    print(
        f"files={report.files_total} completed={report.files_completed} errors={report.files_error} "
        f"results={len(session.results)} crop_failures={report.crop_failures}"
    )
    print(str(paths.job_dir))
    return 0


def _write_exports(session: Session, paths: JobPaths, cfg: EngineConfig, fmt: str) -> None:
    exp = cfg.export
    results = session.results
    language = str(exp.get("header_language", "zh"))
    if fmt == "csv":
        export_csv(results, paths.spreadsheet_path, header_language=language)
    else:
        export_xlsx(
            results,
            paths.spreadsheet_path,
            header_language=language,
            sheet_name=str(exp.get("sheet_name", "Vocabulary")),
        )
    export_zip(
        results,
        paths.archive_path,
        folder=str(exp.get("archive_folder", "images")),
        replacement=str(exp.get("replacement_char", "_")),
    )


def _read_spreadsheet_words(path: Path) -> list[str]:
    if path.suffix == ".csv":
        with path.open("r", newline="", encoding="utf-8-sig") as f:
            rows = list(csv.reader(f))
    else:
        wb = load_workbook(path, read_only=True)
        try:
            rows = [list(r) for r in wb.active.iter_rows(values_only=True)]
        finally:
            wb.close()
    return [str(r[1] if r[1] is not None else "") for r in rows[1:] if len(r) >= 2]


def cmd_validate(args: argparse.Namespace) -> int:
    job_dir = Path(args.job_dir)
    cfg = _load_cfg(args.config)
    errors: list[str] = []

    missing_contract_files = 0
    missing_archive_entries = 0

    spreadsheet = None
    for fmt in SPREADSHEET_FORMATS:
        candidate = job_paths(job_dir, **_export_names(cfg, fmt)).spreadsheet_path
        if candidate.exists():
            spreadsheet = candidate
            break
    paths = job_paths(job_dir, **_export_names(cfg, "xlsx"))

    for p in (paths.status_json, paths.metrics_json, paths.errors_jsonl, paths.archive_path):
        if not p.exists():
            missing_contract_files += 1
            errors.append(f"missing: {p}")
    if spreadsheet is None:
        missing_contract_files += 1
        errors.append(f"missing: spreadsheet under {job_dir}")

    words: list[str] = []
    if spreadsheet is not None and paths.archive_path.exists():
        try:
            words = _read_spreadsheet_words(spreadsheet)
            with zipfile.ZipFile(paths.archive_path) as zf:
                names = set(zf.namelist())
        except Exception as e:
            errors.append(f"failed to read exports: {e}")
            names = set()
        folder = str(cfg.export.get("archive_folder", "images"))
        replacement = str(cfg.export.get("replacement_char", "_"))
        for w in words:
            entry = archive_entry_name(w, folder=folder, replacement=replacement)
            if entry not in names:
                missing_archive_entries += 1
                errors.append(f"missing archive entry: {entry}")

    print(f"missing_contract_files={missing_contract_files}")
    print(f"spreadsheet_rows={len(words)}")
    print(f"missing_archive_entries={missing_archive_entries}")

    if errors:
        for m in errors:
            print(m)
        return 1

    print("OK")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)

    if args.command == "validate":
        return cmd_validate(args)

    raise SystemExit(2)


if __name__ == "__main__":
    raise SystemExit(main())
