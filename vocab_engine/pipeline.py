from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from .config import EngineConfig
from .cropper import DEFAULT_JPEG_QUALITY, try_crop
from .errors import ConfigError, EmptyResultError, TransportError
from .ingest import IngestStats, iter_image_files
from .job import JobPaths, record_error
from .recognizer import Recognizer
from .types import CropFailure, CropSuccess, FileStatus, QueuedFile, VocabResult

PROGRESS_STARTED = 5.0
PROGRESS_RECOGNIZED = 10.0
PROGRESS_ITEMS_SPAN = 90.0
PROGRESS_DONE = 100.0
# Per-item progress stays below 100; only the completed transition reaches it.
PROGRESS_ITEMS_CEILING = 99.0

EMPTY_POLICY_ERROR = "error"
EMPTY_POLICY_COMPLETE = "complete"
EMPTY_RESULT_MESSAGE = "No content detected"


class ResultAccumulator:
    """Append-only, single-owner result sequence.

    Ids are the 1-based position in the sequence. Nothing is ever removed
    except by clear(), so an id given at append time equals the final
    display position.
    """

    def __init__(self) -> None:
        self._items: list[VocabResult] = []

    def post(self, success: CropSuccess, *, source_name: str) -> VocabResult:
        result = VocabResult(
            id=len(self._items) + 1,
            local_id=success.index + 1,
            word=success.item.word.strip(),
            source_name=source_name,
            image=success.crop.image,
            payload=success.crop.payload,
            box_2d=success.item.box_2d,
        )
        self._items.append(result)
        return result

    @property
    def results(self) -> tuple[VocabResult, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        for r in self._items:
            r.image.close()
        self._items.clear()


@dataclass
class Session:
    """In-memory session state: the file queue and the accumulated results."""

    files: list[QueuedFile] = field(default_factory=list)
    accumulator: ResultAccumulator = field(default_factory=ResultAccumulator)

    def add_files(self, inputs: Iterable[str | Path], stats: IngestStats | None = None) -> list[QueuedFile]:
        added: list[QueuedFile] = []
        # fully expanded first so a bad input leaves the queue untouched
        for path, mime in list(iter_image_files(inputs, stats)):
            qf = QueuedFile(name=path.name, path=path, mime_type=mime)
            self.files.append(qf)
            added.append(qf)
        return added

    @property
    def results(self) -> tuple[VocabResult, ...]:
        return self.accumulator.results

    def reset(self) -> None:
        self.accumulator.clear()
        self.files.clear()


@dataclass
class BatchReport:
    files_total: int = 0
    files_skipped_completed: int = 0
    files_processed: int = 0
    files_completed: int = 0
    files_error: int = 0
    files_empty: int = 0
    recognition_calls: int = 0
    items_detected: int = 0
    results_added: int = 0
    crop_failures: int = 0
    global_error: str | None = None


RecognizerProvider = Callable[[], Recognizer]
ProgressCallback = Callable[[QueuedFile], None]


class BatchOrchestrator:
    def __init__(
        self,
        session: Session,
        recognizer_provider: RecognizerProvider,
        paths: JobPaths,
        cfg: EngineConfig,
        on_progress: ProgressCallback | None = None,
    ):
        self.session = session
        self.recognizer_provider = recognizer_provider
        self.paths = paths
        self.cfg = cfg
        self.on_progress = on_progress

        self.quality = int(cfg.crop.get("jpeg_quality", DEFAULT_JPEG_QUALITY))
        self.empty_policy = str(cfg.batch.get("empty_result_policy", EMPTY_POLICY_ERROR))
        if self.empty_policy not in (EMPTY_POLICY_ERROR, EMPTY_POLICY_COMPLETE):
            raise ConfigError(f"unknown empty_result_policy: {self.empty_policy}")

    def _emit(self, qf: QueuedFile) -> None:
        if self.on_progress is not None:
            self.on_progress(qf)

    def _set_progress(self, qf: QueuedFile, value: float) -> None:
        qf.progress = max(qf.progress, value)
        self._emit(qf)

    def process_all(self) -> BatchReport:
        """Run every non-completed file through recognition and cropping.

        Files run strictly one after another. A missing credential aborts the
        batch before any file is touched; any other failure is local to the
        file (or to the card, for crop failures).
        """
        report = BatchReport(files_total=len(self.session.files))

        try:
            recognizer = self.recognizer_provider()
        except ConfigError as e:
            report.global_error = str(e)
            record_error(self.paths, file_name="", stage="config", message=str(e))
            return report

        for qf in self.session.files:
            if qf.status is FileStatus.COMPLETED:
                report.files_skipped_completed += 1
                continue
            report.files_processed += 1
            self._process_file(qf, recognizer, report)

        return report

    def _process_file(self, qf: QueuedFile, recognizer: Recognizer, report: BatchReport) -> None:
        qf.status = FileStatus.PROCESSING
        qf.error = None
        qf.progress = 0.0
        self._set_progress(qf, PROGRESS_STARTED)

        try:
            data = qf.path.read_bytes()
            report.recognition_calls += 1
            items = recognizer.recognize(data, qf.mime_type, name=qf.name)
            if not items:
                report.files_empty += 1
                if self.empty_policy == EMPTY_POLICY_ERROR:
                    raise EmptyResultError(EMPTY_RESULT_MESSAGE)
        except (TransportError, EmptyResultError, OSError) as e:
            stage = "empty_result" if isinstance(e, EmptyResultError) else "recognize"
            record_error(self.paths, file_name=qf.name, stage=stage, message=str(e))
            qf.status = FileStatus.ERROR
            qf.error = str(e)
            report.files_error += 1
            self._emit(qf)
            return

        report.items_detected += len(items)
        self._set_progress(qf, PROGRESS_RECOGNIZED)

        n = len(items)
        outcomes = []
        for j, item in enumerate(items):
            outcome = try_crop(j, item, data, quality=self.quality)
            outcomes.append(outcome)
            if isinstance(outcome, CropSuccess):
                self.session.accumulator.post(outcome, source_name=qf.name)
            self._set_progress(
                qf,
                min(PROGRESS_ITEMS_CEILING, PROGRESS_RECOGNIZED + (j + 1) / n * PROGRESS_ITEMS_SPAN),
            )

        failures = [o for o in outcomes if isinstance(o, CropFailure)]
        for f in failures:
            record_error(self.paths, file_name=qf.name, stage="crop", message=f"item_{f.index} {f.item.word!r}: {f.reason}")

        qf.local_count = n - len(failures)
        report.results_added += n - len(failures)
        report.crop_failures += len(failures)

        qf.status = FileStatus.COMPLETED
        qf.progress = PROGRESS_DONE
        report.files_completed += 1
        self._emit(qf)
