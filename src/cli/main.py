"""
Command line interface of the memory importer.

Usage:
    python -m src.cli chroma http://localhost:8000 notes a.txt b.pdf c.csv
    python -m src.cli azuresearch https://my-search.search.windows.net notes a.txt

Exit codes:
    0: All files imported without failures
    1: Completed, but some files or units failed
    2: Invalid arguments or configuration, nothing was imported
    130: Aborted (SIGINT/SIGTERM)
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Sequence

from pydantic import ValidationError as SettingsValidationError

from src.config.settings import Settings, get_settings
from src.core.memory import MemorySink, MemoryType, create_memory_sink
from src.ingestion.models import IngestionSummary, JobState
from src.ingestion.pipeline import IngestionJob, IngestionPipeline, RetryPolicy
from src.ingestion.progress import (
    CompositeProgressReporter,
    ConsoleProgressReporter,
    LoggingProgressReporter,
    ProgressReporter,
)
from src.ingestion.segmenter import Segmenter
from src.utils.exceptions import (
    EXIT_ABORTED,
    EXIT_OK,
    EXIT_PARTIAL_FAILURE,
    EXIT_VALIDATION_FAILED,
    JobAbortedError,
    MemoryImportError,
    ValidationError,
    get_exit_code,
)
from src.utils.logging import clear_run_id, get_logger, set_run_id, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memory-importer",
        description=(
            "Import text, PDF and CSV files into a vector memory collection. "
            "Every sentence, PDF line or CSV row becomes one memory with a "
            "sequential ID."
        ),
    )
    parser.add_argument(
        "memory_type",
        help=f"Memory backend: {', '.join(t.value for t in MemoryType)}.",
    )
    parser.add_argument("memory_url", help="URL of the memory backend.")
    parser.add_argument("collection", help="Collection to import into.")
    parser.add_argument(
        "files",
        nargs="*",
        help="Files to import (.txt, .pdf, .csv). Other files are skipped.",
    )
    parser.add_argument(
        "--language",
        help="Language code for sentence segmentation (default: INGEST_LANGUAGE or 'en').",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Number of saves in flight (default: INGEST_MAX_CONCURRENCY or 1).",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        help="Save attempts per memory before it is skipped (default: INGEST_MAX_ATTEMPTS or 3).",
    )
    parser.add_argument(
        "--progress-every",
        type=int,
        help="Print progress every N memories of a file (default: INGEST_PROGRESS_EVERY or 10).",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: LOG_LEVEL or INFO).",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        help="Log format (default: LOG_FORMAT or console).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output on stdout.",
    )
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with command line options applied on top."""
    ingestion = {
        "language": args.language,
        "max_concurrency": args.concurrency,
        "max_attempts": args.max_attempts,
        "progress_every": args.progress_every,
    }
    logging_ = {"log_level": args.log_level, "log_format": args.log_format}

    ingestion = {k: v for k, v in ingestion.items() if v is not None}
    logging_ = {k: v for k, v in logging_.items() if v is not None}

    return settings.model_copy(
        update={
            "ingestion": settings.ingestion.model_validate(
                {**settings.ingestion.model_dump(), **ingestion}
            ),
            "logging": settings.logging.model_validate(
                {**settings.logging.model_dump(), **logging_}
            ),
        }
    )


def build_reporter(settings: Settings, quiet: bool) -> ProgressReporter:
    if quiet:
        return LoggingProgressReporter()
    if settings.logging.log_format == "json":
        return CompositeProgressReporter(
            [ConsoleProgressReporter(sys.stdout), LoggingProgressReporter()]
        )
    return ConsoleProgressReporter(sys.stdout)


def build_pipeline(
    settings: Settings,
    sink: MemorySink,
    reporter: ProgressReporter,
) -> IngestionPipeline:
    ingestion = settings.ingestion
    return IngestionPipeline(
        segmenter=Segmenter(language=ingestion.language),
        sink=sink,
        reporter=reporter,
        retry_policy=RetryPolicy(
            max_attempts=ingestion.max_attempts,
            initial_delay=ingestion.initial_retry_delay,
            multiplier=ingestion.retry_multiplier,
            max_delay=ingestion.max_retry_delay,
        ),
        max_concurrency=ingestion.max_concurrency,
        progress_every=ingestion.progress_every,
    )


async def run_job(
    pipeline: IngestionPipeline,
    job: IngestionJob,
    cancel_event: asyncio.Event | None = None,
) -> IngestionSummary:
    """
    Run a job with SIGINT/SIGTERM wired to cooperative cancellation.

    The sink is connected before the first file and closed afterwards.
    """
    cancel_event = cancel_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            # No loop signal support (e.g. Windows or a non-main thread)
            pass

    try:
        await pipeline.sink.connect()
        return await pipeline.run(job, cancel_event)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await pipeline.sink.close()


def exit_code_for(summary: IngestionSummary) -> int:
    if summary.state is JobState.ABORTED:
        return get_exit_code(
            JobAbortedError(
                "Import aborted",
                details={"units_persisted": summary.units_persisted},
            )
        )
    if summary.success:
        return EXIT_OK
    return EXIT_PARTIAL_FAILURE


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run the importer from command line arguments.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    try:
        settings = apply_overrides(get_settings(), args)
    except SettingsValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_VALIDATION_FAILED

    setup_logging(settings.logging.log_level, settings.logging.log_format)
    run_id = set_run_id()

    try:
        job = IngestionJob.from_paths(args.collection, args.files)
        sink = create_memory_sink(args.memory_type, args.memory_url, settings)
        pipeline = build_pipeline(settings, sink, build_reporter(settings, args.quiet))
    except ValidationError as e:
        logger.error("validation_failed", error_type=type(e).__name__, error=str(e))
        print(e.message, file=sys.stderr)
        clear_run_id()
        return get_exit_code(e)

    logger.info(
        "import_started",
        run_id=run_id,
        memory_type=args.memory_type,
        collection=job.collection_name,
        num_files=len(job.files),
    )

    try:
        summary = asyncio.run(run_job(pipeline, job))
    except MemoryImportError as e:
        logger.error("import_failed", error_type=type(e).__name__, error=str(e))
        print(f"Error: {e.message}", file=sys.stderr)
        return get_exit_code(e)
    except KeyboardInterrupt as e:
        logger.warning("import_interrupted")
        return get_exit_code(e)
    finally:
        clear_run_id()

    code = exit_code_for(summary)
    if code == EXIT_ABORTED:
        logger.warning("import_aborted", units_persisted=summary.units_persisted)
    return code
