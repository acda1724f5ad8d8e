"""
Progress reporting for ingestion runs.

Reporters observe the orchestrator and translate its events into output.
They never feed anything back: a run without a reporter persists exactly the
same units as a run with one.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Iterable, TextIO

from src.ingestion.formats import DocumentFormat, FileRef
from src.ingestion.models import FileResult, IngestionSummary, UnitFailure
from src.utils.logging import LoggerMixin

if TYPE_CHECKING:
    from src.ingestion.pipeline import IngestionJob


class ProgressReporter:
    """
    Base reporter. Every hook is a no-op; subclasses override what they need.

    ``index`` arguments are 1-based positions of the file in the job and
    ``total`` is the number of files in the job. The ``count`` passed to
    ``unit_saved`` is the position of the unit in its file. Segments are
    produced lazily, so a file's unit total is only known in ``file_completed``.
    """

    def job_started(self, job: "IngestionJob") -> None:
        pass

    def file_started(self, index: int, total: int, file_ref: FileRef) -> None:
        pass

    def unit_saved(self, index: int, total: int, file_ref: FileRef, count: int) -> None:
        pass

    def unit_failed(self, file_ref: FileRef, failure: UnitFailure) -> None:
        pass

    def file_skipped(self, index: int, total: int, file_ref: FileRef) -> None:
        pass

    def file_completed(self, index: int, total: int, result: FileResult) -> None:
        pass

    def job_completed(self, summary: IngestionSummary) -> None:
        pass

    def error(self, file_ref: FileRef | None, error: Exception) -> None:
        pass


class ConsoleProgressReporter(ProgressReporter):
    """
    Writes human-readable progress lines.

    Example output:
        Importing [1/2] docs/a.txt
        Importing text file.
        [1/2] docs/a.txt: 10 units
        ✓ docs/a.txt: 12 units → 12 saved, 0 failed [ids 0..11]
        Done! 2 files processed, 0 skipped, 0 failed; 20 units persisted, 0 failed (collection: notes)
    """

    FORMAT_NOTICES = {
        DocumentFormat.TEXT: "Importing text file.",
        DocumentFormat.PDF: "Importing pdf file.",
        DocumentFormat.CSV: "Importing csv file.",
    }

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def _write(self, line: str) -> None:
        print(line, file=self.stream, flush=True)

    def file_started(self, index: int, total: int, file_ref: FileRef) -> None:
        self._write(f"Importing [{index}/{total}] {file_ref.path}")
        notice = self.FORMAT_NOTICES.get(file_ref.detected_format)
        if notice:
            self._write(notice)

    def unit_saved(self, index: int, total: int, file_ref: FileRef, count: int) -> None:
        self._write(f"[{index}/{total}] {file_ref.path}: {count} units")

    def unit_failed(self, file_ref: FileRef, failure: UnitFailure) -> None:
        self._write(
            f"Failed to save unit {failure.memory_id} "
            f"({file_ref.path}, position {failure.position}) "
            f"after {failure.attempts} attempts: {failure.error}"
        )

    def file_skipped(self, index: int, total: int, file_ref: FileRef) -> None:
        self._write(f"Skipping [{index}/{total}] {file_ref.path}: unsupported file type.")

    def file_completed(self, index: int, total: int, result: FileResult) -> None:
        self._write(str(result))

    def job_completed(self, summary: IngestionSummary) -> None:
        self._write(str(summary))

    def error(self, file_ref: FileRef | None, error: Exception) -> None:
        where = f"{file_ref.path}: " if file_ref is not None else ""
        self._write(f"Error: {where}{error}")


class LoggingProgressReporter(ProgressReporter, LoggerMixin):
    """Emits every orchestration event as a structured log event."""

    def job_started(self, job: "IngestionJob") -> None:
        self.logger.info(
            "job_started",
            collection=job.collection_name,
            num_files=len(job.files),
            first_id=job.allocator.cursor,
        )

    def file_started(self, index: int, total: int, file_ref: FileRef) -> None:
        self.logger.info(
            "file_started",
            file_path=str(file_ref.path),
            format=file_ref.detected_format.value,
            index=index,
            total=total,
        )

    def unit_saved(self, index: int, total: int, file_ref: FileRef, count: int) -> None:
        self.logger.info("units_saved", file_path=str(file_ref.path), count=count)

    def unit_failed(self, file_ref: FileRef, failure: UnitFailure) -> None:
        self.logger.warning(
            "unit_failed",
            file_path=str(file_ref.path),
            memory_id=failure.memory_id,
            position=failure.position,
            attempts=failure.attempts,
            error=failure.error,
        )

    def file_skipped(self, index: int, total: int, file_ref: FileRef) -> None:
        self.logger.info(
            "file_skipped",
            file_path=str(file_ref.path),
            reason="unsupported_format",
            extension=file_ref.path.suffix,
        )

    def file_completed(self, index: int, total: int, result: FileResult) -> None:
        self.logger.info(
            "file_completed",
            file_path=result.file_path,
            status=result.status.value,
            num_units_produced=result.num_units_produced,
            num_units_saved=result.num_units_saved,
            num_units_failed=result.num_units_failed,
            first_id=result.first_id,
            last_id=result.last_id,
        )

    def job_completed(self, summary: IngestionSummary) -> None:
        self.logger.info(
            "job_completed",
            state=summary.state.value,
            files_processed=summary.files_processed,
            files_skipped=summary.files_skipped,
            files_failed=summary.files_failed,
            units_persisted=summary.units_persisted,
            units_failed=summary.units_failed,
        )

    def error(self, file_ref: FileRef | None, error: Exception) -> None:
        self.logger.error(
            "ingestion_error",
            file_path=str(file_ref.path) if file_ref is not None else None,
            error_type=type(error).__name__,
            error=str(error),
        )


class CompositeProgressReporter(ProgressReporter, LoggerMixin):
    """
    Fans every event out to several reporters, in order.

    A reporter that raises is logged and skipped; the others still receive
    the event.
    """

    def __init__(self, reporters: Iterable[ProgressReporter]) -> None:
        self.reporters = list(reporters)

    def _dispatch(self, hook: str, *args) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, hook)(*args)
            except Exception as e:
                self.logger.warning(
                    "progress_reporter_failed",
                    hook=hook,
                    reporter=type(reporter).__name__,
                    error=str(e),
                )

    def job_started(self, job: "IngestionJob") -> None:
        self._dispatch("job_started", job)

    def file_started(self, index: int, total: int, file_ref: FileRef) -> None:
        self._dispatch("file_started", index, total, file_ref)

    def unit_saved(self, index: int, total: int, file_ref: FileRef, count: int) -> None:
        self._dispatch("unit_saved", index, total, file_ref, count)

    def unit_failed(self, file_ref: FileRef, failure: UnitFailure) -> None:
        self._dispatch("unit_failed", file_ref, failure)

    def file_skipped(self, index: int, total: int, file_ref: FileRef) -> None:
        self._dispatch("file_skipped", index, total, file_ref)

    def file_completed(self, index: int, total: int, result: FileResult) -> None:
        self._dispatch("file_completed", index, total, result)

    def job_completed(self, summary: IngestionSummary) -> None:
        self._dispatch("job_completed", summary)

    def error(self, file_ref: FileRef | None, error: Exception) -> None:
        self._dispatch("error", file_ref, error)
