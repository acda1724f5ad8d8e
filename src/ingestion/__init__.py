"""
Ingestion module for the memory importer.

This module provides the import workflow:
- Format detection and per-format segmentation (text, PDF, CSV)
- Sequential memory ID allocation
- Job orchestration with retries, cancellation and progress reporting
"""

from src.ingestion.formats import DocumentFormat, FileRef
from src.ingestion.identity import IdentityAllocator
from src.ingestion.models import (
    FileResult,
    FileStatus,
    IngestionSummary,
    JobState,
    MemoryUnit,
    UnitFailure,
)
from src.ingestion.pipeline import IngestionJob, IngestionPipeline, RetryPolicy
from src.ingestion.progress import (
    CompositeProgressReporter,
    ConsoleProgressReporter,
    LoggingProgressReporter,
    ProgressReporter,
)
from src.ingestion.segmenter import Segment, Segmenter

__all__ = [
    "DocumentFormat",
    "FileRef",
    "IdentityAllocator",
    "Segment",
    "Segmenter",
    "MemoryUnit",
    "JobState",
    "FileStatus",
    "FileResult",
    "UnitFailure",
    "IngestionSummary",
    "IngestionJob",
    "IngestionPipeline",
    "RetryPolicy",
    "ProgressReporter",
    "ConsoleProgressReporter",
    "LoggingProgressReporter",
    "CompositeProgressReporter",
]
