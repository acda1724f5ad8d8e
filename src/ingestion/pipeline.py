"""
Ingestion pipeline for the memory importer.

This module orchestrates an import job:
1. Walk the input files in the order they were given
2. Segment each file according to its format
3. Assign sequential memory IDs
4. Embed and persist every unit through the memory sink
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Set

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.memory import MemorySink
from src.ingestion.formats import FileRef
from src.ingestion.identity import IdentityAllocator
from src.ingestion.models import (
    FileResult,
    FileStatus,
    IngestionSummary,
    JobState,
    MemoryUnit,
    UnitFailure,
)
from src.ingestion.progress import ProgressReporter
from src.ingestion.segmenter import Segmenter
from src.utils.exceptions import InvalidJobError, SegmentationError, SinkError
from src.utils.logging import LoggerMixin, get_run_id, set_run_id


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff for saving one memory unit.

    Attributes:
        max_attempts: Total attempts per unit, including the first one.
        initial_delay: Seconds to wait after the first failed attempt.
        multiplier: Factor applied to the delay after every failure.
        max_delay: Upper bound for a single delay.
    """

    max_attempts: int = 3
    initial_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 8.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must be non-negative")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be at least 1, got {self.multiplier}")

    def retrying(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        before_sleep: Callable[[RetryCallState], None] | None = None,
    ) -> AsyncRetrying:
        """
        Build the retry controller for one unit.

        Only sink errors are retried. Once the attempts are used up the last
        error is re-raised.

        Example:
            >>> async for attempt in RetryPolicy().retrying():
            ...     with attempt:
            ...         await sink.save("notes", "0", "Hello.", "Hello.")
        """
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.initial_delay,
                exp_base=self.multiplier,
                max=self.max_delay,
            ),
            retry=retry_if_exception_type(SinkError),
            sleep=sleep,
            before_sleep=before_sleep,
            reraise=True,
        )


@dataclass
class IngestionJob:
    """
    One import run: an ordered list of files written to one collection.

    The job owns its ID allocator, so every unit of every file draws from
    the same sequence. A job runs at most once.

    Attributes:
        collection_name: Target collection in the memory backend.
        files: Files to import, in processing order.
        allocator: ID allocator shared by all files of the job.
        state: Lifecycle state, updated by the pipeline.

    Raises:
        InvalidJobError: If the collection name is blank or no files are given.
    """

    collection_name: str
    files: List[FileRef]
    allocator: IdentityAllocator = field(default_factory=IdentityAllocator)
    state: JobState = JobState.NOT_STARTED

    def __post_init__(self) -> None:
        if not self.collection_name or not self.collection_name.strip():
            raise InvalidJobError("A collection name is required.")
        if not self.files:
            raise InvalidJobError("No text files provided. Use '--help' for usage.")

        self.files = [
            f if isinstance(f, FileRef) else FileRef.from_path(f) for f in self.files
        ]

    @classmethod
    def from_paths(
        cls,
        collection_name: str,
        paths: Iterable[str | Path],
        start_id: int = 0,
    ) -> "IngestionJob":
        return cls(
            collection_name=collection_name,
            files=[FileRef.from_path(p) for p in paths],
            allocator=IdentityAllocator(start_id),
        )


class IngestionPipeline(LoggerMixin):
    """
    Runs ingestion jobs against a memory sink.

    Files are processed one after another in the order of the job. Within a
    file, segments are turned into memory units in order and IDs are always
    allocated in that order. With ``max_concurrency`` above 1 only the sink
    calls overlap; a file is complete once all of its writes have settled.

    Args:
        segmenter: Splits files into segments.
        sink: Memory sink that embeds and persists units.
        reporter: Optional progress observer.
        retry_policy: Retry behaviour for failed saves.
        max_concurrency: Maximum number of saves in flight.
        progress_every: Report progress at every N-th unit position of a file.
        sleep: Coroutine used to wait between retries.

    Example:
        >>> pipeline = IngestionPipeline(Segmenter(), sink)
        >>> job = IngestionJob.from_paths("notes", ["a.txt", "b.pdf"])
        >>> summary = await pipeline.run(job)
        >>> print(summary)
        Done! 2 files processed, 0 skipped, 0 failed; 57 units persisted, 0 failed (collection: notes)
    """

    def __init__(
        self,
        segmenter: Segmenter,
        sink: MemorySink,
        reporter: ProgressReporter | None = None,
        retry_policy: RetryPolicy | None = None,
        max_concurrency: int = 1,
        progress_every: int = 10,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        if progress_every < 1:
            raise ValueError(f"progress_every must be at least 1, got {progress_every}")

        self.segmenter = segmenter
        self.sink = sink
        self.reporter = reporter
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_concurrency = max_concurrency
        self.progress_every = progress_every
        self.sleep = sleep

        self.logger.info(
            "pipeline_initialized",
            sink=type(sink).__name__,
            max_attempts=self.retry_policy.max_attempts,
            max_concurrency=max_concurrency,
        )

    async def run(
        self,
        job: IngestionJob,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestionSummary:
        """
        Import every file of a job.

        Segmentation failures end only the affected file and units that keep
        failing after retries are recorded and skipped. Setting
        ``cancel_event`` stops the job before the next unit; saves already
        in flight are awaited and the summary reports the job as aborted.

        Args:
            job: Job to run. Must not have been run before.
            cancel_event: Optional event requesting cooperative cancellation.

        Returns:
            IngestionSummary with per-file results and unit failures.

        Raises:
            InvalidJobError: If the job has already been started.
        """
        if job.state is not JobState.NOT_STARTED:
            raise InvalidJobError(
                f"Job for collection {job.collection_name} was already run",
                details={"state": job.state.value},
            )

        if get_run_id() is None:
            set_run_id()

        cancel_event = cancel_event or asyncio.Event()
        summary = IngestionSummary(collection_name=job.collection_name)
        total = len(job.files)
        aborted = False

        job.state = summary.state = JobState.RUNNING
        self.logger.info(
            "ingestion_started",
            collection=job.collection_name,
            num_files=total,
            first_id=job.allocator.cursor,
        )
        self._notify("job_started", job)

        try:
            for index, file_ref in enumerate(job.files, start=1):
                if cancel_event.is_set():
                    aborted = True
                    break

                if not file_ref.detected_format.is_supported:
                    self.logger.warning(
                        "unsupported_file_skipped",
                        file_path=str(file_ref.path),
                        extension=file_ref.path.suffix,
                    )
                    summary.files.append(
                        FileResult(
                            file_path=str(file_ref.path),
                            format=file_ref.detected_format,
                            status=FileStatus.SKIPPED_UNSUPPORTED,
                        )
                    )
                    self._notify("file_skipped", index, total, file_ref)
                    continue

                self._notify("file_started", index, total, file_ref)
                result = await self._ingest_file(
                    job, file_ref, index, total, summary, cancel_event
                )
                summary.files.append(result)
                self._notify("file_completed", index, total, result)

                if result.status is FileStatus.INTERRUPTED:
                    aborted = True
                    break
        except BaseException as e:
            job.state = summary.state = JobState.ABORTED
            self.logger.error(
                "ingestion_failed",
                collection=job.collection_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        job.state = summary.state = JobState.ABORTED if aborted else JobState.COMPLETED

        self.logger.info(
            "ingestion_complete",
            collection=job.collection_name,
            state=summary.state.value,
            files_processed=summary.files_processed,
            files_skipped=summary.files_skipped,
            files_failed=summary.files_failed,
            units_persisted=summary.units_persisted,
            units_failed=summary.units_failed,
            next_id=job.allocator.cursor,
        )
        self._notify("job_completed", summary)

        return summary

    async def _ingest_file(
        self,
        job: IngestionJob,
        file_ref: FileRef,
        index: int,
        total: int,
        summary: IngestionSummary,
        cancel_event: asyncio.Event,
    ) -> FileResult:
        path_str = str(file_ref.path)
        result = FileResult(file_path=path_str, format=file_ref.detected_format)
        semaphore = asyncio.Semaphore(self.max_concurrency)
        pending: Set[asyncio.Task] = set()
        interrupted = False

        self.logger.info(
            "file_ingestion_started",
            file_path=path_str,
            format=file_ref.detected_format.value,
        )

        try:
            segments = iter(self.segmenter.segment(file_ref))
            position = 0

            while True:
                if cancel_event.is_set():
                    interrupted = True
                    break

                segment = next(segments, None)
                if segment is None:
                    break

                position += 1
                unit = MemoryUnit(
                    id=job.allocator.next(),
                    text=segment.text,
                    description=segment.label,
                    source=path_str,
                    position=position,
                )
                if result.first_id is None:
                    result.first_id = unit.id
                result.last_id = unit.id
                result.num_units_produced += 1

                if self.max_concurrency == 1:
                    await self._save_unit(job, file_ref, index, total, unit, result, summary)
                    continue

                await semaphore.acquire()
                task = asyncio.create_task(
                    self._save_unit_bounded(
                        semaphore, job, file_ref, index, total, unit, result, summary
                    )
                )
                pending.add(task)
                task.add_done_callback(pending.discard)

        except SegmentationError as e:
            result.status = FileStatus.FAILED
            result.error = str(e)
            self.logger.error(
                "file_segmentation_failed",
                file_path=path_str,
                error=str(e),
                units_before_failure=result.num_units_produced,
            )
            self._notify("error", file_ref, e)
        finally:
            if pending:
                await asyncio.gather(*pending)

        if result.status is not FileStatus.FAILED:
            if interrupted:
                result.status = FileStatus.INTERRUPTED
            elif result.num_units_produced == 0:
                result.status = FileStatus.EMPTY

        self.logger.info(
            "file_ingestion_complete",
            file_path=path_str,
            status=result.status.value,
            num_units_produced=result.num_units_produced,
            num_units_saved=result.num_units_saved,
            num_units_failed=result.num_units_failed,
        )
        return result

    async def _save_unit_bounded(
        self,
        semaphore: asyncio.Semaphore,
        *args,
    ) -> None:
        try:
            await self._save_unit(*args)
        finally:
            semaphore.release()

    async def _save_unit(
        self,
        job: IngestionJob,
        file_ref: FileRef,
        index: int,
        total: int,
        unit: MemoryUnit,
        result: FileResult,
        summary: IngestionSummary,
    ) -> None:
        """Save one unit, retrying sink errors; give up by recording a failure."""

        def log_retry(retry_state: RetryCallState) -> None:
            self.logger.warning(
                "unit_save_retrying",
                memory_id=unit.id,
                file_path=unit.source,
                attempt=retry_state.attempt_number,
                max_attempts=self.retry_policy.max_attempts,
                delay=retry_state.next_action.sleep if retry_state.next_action else None,
                error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
            )

        attempts = 0
        try:
            async for attempt in self.retry_policy.retrying(self.sleep, log_retry):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    await self.sink.save(
                        job.collection_name, unit.id, unit.text, unit.description
                    )
        except SinkError as e:
            self.logger.warning(
                "unit_save_failed",
                memory_id=unit.id,
                file_path=unit.source,
                attempts=attempts,
                error=str(e),
            )
            failure = UnitFailure(
                memory_id=unit.id,
                file_path=unit.source,
                position=unit.position,
                attempts=attempts,
                error=str(e),
            )
            result.num_units_failed += 1
            summary.failures.append(failure)
            self._notify("unit_failed", file_ref, failure)
        else:
            result.num_units_saved += 1

        # Cadence follows the unit's position, saved or not
        if unit.position % self.progress_every == 0:
            self._notify("unit_saved", index, total, file_ref, unit.position)

    def _notify(self, hook: str, *args) -> None:
        """Call a reporter hook; reporter errors are logged and ignored."""
        if self.reporter is None:
            return
        try:
            getattr(self.reporter, hook)(*args)
        except Exception as e:
            self.logger.warning(
                "progress_reporter_failed",
                hook=hook,
                reporter=type(self.reporter).__name__,
                error=str(e),
            )
