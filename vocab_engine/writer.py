from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .job import JobPaths
from .types import QueuedFile, VocabResult
from .utils import utc_now_iso, write_json


@dataclass
class JobWriter:
    paths: JobPaths

    def write_final(
        self,
        job_meta: dict[str, Any],
        files: list[QueuedFile],
        results: tuple[VocabResult, ...],
        metrics: Any,
    ) -> None:
        now = utc_now_iso()

        metrics_out = asdict(metrics) if not isinstance(metrics, dict) else dict(metrics)
        metrics_out["finished"] = True
        metrics_out["completed_at"] = now

        job_out = dict(job_meta)
        job_out["completed_at"] = now

        write_json(
            self.paths.status_json,
            {
                "job": job_out,
                "files": [f.to_dict() for f in files],
                "results": [r.to_dict() for r in results],
            },
        )
        write_json(self.paths.metrics_json, metrics_out)
