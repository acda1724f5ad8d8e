"""
Data model of an ingestion run.

Memory units are created by the orchestrator from segmenter output and
consumed once by the memory sink. File results and the job summary are the
caller-visible outcome of a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from src.ingestion.formats import DocumentFormat


@dataclass(frozen=True)
class MemoryUnit:
    """
    The atomic record persisted in the memory backend.

    Attributes:
        id: Sequential ID, unique within the run.
        text: Text that is embedded and stored.
        description: Label stored with the text (defaults to the text).
        source: Path of the file the unit came from.
        position: 1-based position of the unit inside its file.
    """

    id: str
    text: str
    description: str
    source: str = ""
    position: int = 0


class JobState(str, Enum):
    """Lifecycle of an ingestion job."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class FileStatus(str, Enum):
    """Outcome of one input file."""

    COMPLETED = "completed"
    EMPTY = "empty"
    SKIPPED_UNSUPPORTED = "skipped_unsupported"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


@dataclass(frozen=True)
class UnitFailure:
    """
    A memory unit that could not be saved after all retry attempts.

    The unit's ID stays consumed; it is never handed out again in the run.
    """

    memory_id: str
    file_path: str
    position: int
    attempts: int
    error: str


@dataclass
class FileResult:
    """
    Result of ingesting one file.

    Attributes:
        file_path: Path of the file.
        format: Detected format.
        status: Outcome of the file.
        num_units_produced: Units the segmenter yielded before the file ended.
        num_units_saved: Units persisted in the memory backend.
        num_units_failed: Units given up on after retries.
        first_id: First ID allocated for the file, if any.
        last_id: Last ID allocated for the file, if any.
        error: Error message if segmentation failed.
    """

    file_path: str
    format: DocumentFormat
    status: FileStatus = FileStatus.COMPLETED
    num_units_produced: int = 0
    num_units_saved: int = 0
    num_units_failed: int = 0
    first_id: str | None = None
    last_id: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status in (FileStatus.COMPLETED, FileStatus.EMPTY) and self.num_units_failed == 0

    def __str__(self) -> str:
        """Human-readable string representation."""
        if self.status is FileStatus.SKIPPED_UNSUPPORTED:
            return f"- {self.file_path}: skipped (unsupported format)"
        if self.status is FileStatus.FAILED:
            return (
                f"✗ {self.file_path}: {self.error} "
                f"({self.num_units_saved} units saved before failure)"
            )
        if self.status is FileStatus.INTERRUPTED:
            return (
                f"! {self.file_path}: interrupted after "
                f"{self.num_units_produced} units ({self.num_units_saved} saved)"
            )
        mark = "✓" if self.success else "!"
        ids = f" [ids {self.first_id}..{self.last_id}]" if self.first_id is not None else ""
        return (
            f"{mark} {self.file_path}: "
            f"{self.num_units_produced} units → "
            f"{self.num_units_saved} saved, "
            f"{self.num_units_failed} failed{ids}"
        )


@dataclass
class IngestionSummary:
    """
    Final per-job summary.

    Attributes:
        collection_name: Collection the job wrote to.
        state: Terminal job state.
        files: Results in processing order.
        failures: Units that could not be saved.
    """

    collection_name: str
    state: JobState = JobState.NOT_STARTED
    files: List[FileResult] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)

    @property
    def files_processed(self) -> int:
        return sum(
            1 for r in self.files if r.status in (FileStatus.COMPLETED, FileStatus.EMPTY)
        )

    @property
    def files_skipped(self) -> int:
        return sum(1 for r in self.files if r.status is FileStatus.SKIPPED_UNSUPPORTED)

    @property
    def files_failed(self) -> int:
        return sum(1 for r in self.files if r.status is FileStatus.FAILED)

    @property
    def units_persisted(self) -> int:
        return sum(r.num_units_saved for r in self.files)

    @property
    def units_failed(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        return (
            self.state is JobState.COMPLETED
            and self.files_failed == 0
            and self.units_failed == 0
        )

    def __str__(self) -> str:
        verb = "Done!" if self.state is JobState.COMPLETED else "Aborted."
        return (
            f"{verb} {self.files_processed} files processed, "
            f"{self.files_skipped} skipped, {self.files_failed} failed; "
            f"{self.units_persisted} units persisted, {self.units_failed} failed "
            f"(collection: {self.collection_name})"
        )
