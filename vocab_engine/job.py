from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .utils import append_jsonl, ensure_dir, utc_now_iso, write_json


@dataclass
class JobPaths:
    job_dir: Path
    spreadsheet_path: Path
    archive_path: Path
    status_json: Path
    metrics_json: Path
    errors_jsonl: Path


def job_paths(job_dir: str | Path, *, spreadsheet_name: str = "Vocabulary_List.xlsx", archive_name: str = "Extracted_Images.zip") -> JobPaths:
    job_dir = Path(job_dir)
    return JobPaths(
        job_dir=job_dir,
        spreadsheet_path=job_dir / spreadsheet_name,
        archive_path=job_dir / archive_name,
        status_json=job_dir / "status.json",
        metrics_json=job_dir / "metrics.json",
        errors_jsonl=job_dir / "errors.jsonl",
    )


def create_job_dirs(workspace: str | Path, job_id: str, **names: str) -> JobPaths:
    """Create the job directory under <workspace>/jobs/<job_id>."""
    job_dir = Path(workspace) / "jobs" / job_id
    ensure_dir(job_dir)
    return job_paths(job_dir, **names)


def new_job_id(use_timeline: bool = True) -> str:
    """Generate a new job ID.

    Args:
        use_timeline: If True, use timeline format YYYY-MM-DD/HH-MM-SS__<shortid>
                     If False, use UUID format

    Returns:
        Job ID string
    """
    if not use_timeline:
        return str(uuid.uuid4())

    now = datetime.now(timezone.utc)
    date_part = now.strftime("%Y-%m-%d")
    time_part = now.strftime("%H-%M-%S")
    short_id = uuid.uuid4().hex[:8]
    return f"{date_part}/{time_part}__{short_id}"


def record_error(paths: JobPaths, file_name: str, stage: str, message: str) -> None:
    append_jsonl(paths.errors_jsonl, {"file": file_name, "stage": stage, "message": message, "at": utc_now_iso()})


def init_job_outputs(paths: JobPaths) -> None:
    # Always create status/metrics/errors, even if the batch aborts.
    write_json(paths.status_json, {"files": []})
    write_json(
        paths.metrics_json,
        {
            "created_at": utc_now_iso(),
            "finished": False,
            "completed_at": None,
        },
    )
    paths.errors_jsonl.parent.mkdir(parents=True, exist_ok=True)
    paths.errors_jsonl.touch(exist_ok=True)


def job_meta(job_id: str, inputs: list[str], extra: dict[str, Any] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {"job_id": job_id, "inputs": list(inputs), "created_at": utc_now_iso()}
    if extra:
        meta.update(extra)
    return meta
