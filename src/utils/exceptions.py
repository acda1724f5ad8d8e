"""
Custom exception hierarchy for the memory importer.

This module defines the exception families used throughout the ingestion
pipeline. Each family has a distinct blast radius:

- ValidationError: fatal before any work begins (bad arguments, missing credentials)
- SegmentationError: scoped to one file, the file is skipped
- SinkError: scoped to one memory unit, retried then recorded
"""

from typing import Any, Dict, Optional


class MemoryImportError(Exception):
    """
    Base exception for all memory importer errors.

    All custom exceptions in the importer inherit from this base class.
    This allows for easy catching of all importer-related errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        cause: Optional underlying exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        """
        Initialize memory importer exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        """Return detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )


# =============================================================================
# Validation Errors
# =============================================================================

class ValidationError(MemoryImportError):
    """
    Invalid invocation detected before any work begins.

    Raised when the job cannot start at all. Nothing has been written to
    the memory backend when this is raised.
    """
    pass


class InvalidJobError(ValidationError):
    """
    Ingestion job is malformed.

    Raised when no input files are given, the collection name is empty,
    or a finished job is run a second time.
    """
    pass


class ConfigurationError(ValidationError):
    """
    Error in importer configuration.

    Raised when configuration is invalid, missing, or inconsistent.
    """
    pass


class MissingConfigurationError(ConfigurationError):
    """
    Required configuration value is missing.

    Raised when a credential or endpoint required by the selected backend
    is not provided.
    """
    pass


class InvalidConfigurationError(ConfigurationError):
    """
    Configuration value is invalid.

    Raised when a configuration parameter has an invalid value, e.g. a
    backend URL without a host.
    """
    pass


class UnsupportedBackendError(ConfigurationError):
    """
    Memory backend selector is not recognized.
    """
    pass


# =============================================================================
# Segmentation Errors
# =============================================================================

class SegmentationError(MemoryImportError):
    """
    Error turning one file into memory units.

    Scoped to a single file: the file is abandoned, the remaining files of
    the job are still processed.
    """
    pass


class DocumentLoadError(SegmentationError):
    """
    Error reading a document from disk.

    Raised when a file is missing, unreadable, or cannot be decoded with
    any of the supported encodings.
    """
    pass


class DocumentParseError(SegmentationError):
    """
    Error extracting content from a document.

    Raised when a document is read but its structure cannot be analyzed,
    e.g. a corrupt PDF.
    """
    pass


# =============================================================================
# Sink Errors
# =============================================================================

class SinkError(MemoryImportError):
    """
    Error persisting a single memory unit.

    Covers both the embedding round trip and the vector store write.
    """
    pass


class EmbeddingError(SinkError):
    """
    Error with embedding generation.

    Raised for issues with creating embeddings from text.
    """
    pass


class EmbeddingGenerationError(EmbeddingError):
    """
    Embedding service failed or returned an unusable vector.
    """
    pass


class MemoryStoreError(SinkError):
    """
    Error writing to the vector memory backend.

    Raised when the backend rejects or fails an upsert.
    """
    pass


class MemoryStoreConnectionError(MemoryStoreError):
    """
    Error connecting to the vector memory backend.
    """
    pass


# =============================================================================
# Job Control
# =============================================================================

class JobAbortedError(MemoryImportError):
    """
    Ingestion job was cancelled before completion.
    """
    pass


# =============================================================================
# Utility Functions
# =============================================================================

EXIT_OK = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_VALIDATION_FAILED = 2
EXIT_ABORTED = 130


def get_exit_code(exception: BaseException) -> int:
    """
    Map exception to the process exit code reported by the CLI.

    Args:
        exception: Exception instance

    Returns:
        Process exit code
    """
    # Most specific types first
    status_map = {
        ValidationError: EXIT_VALIDATION_FAILED,
        JobAbortedError: EXIT_ABORTED,
        SegmentationError: EXIT_PARTIAL_FAILURE,
        SinkError: EXIT_PARTIAL_FAILURE,
        MemoryImportError: EXIT_PARTIAL_FAILURE,
    }

    for exc_type, exit_code in status_map.items():
        if isinstance(exception, exc_type):
            return exit_code

    if isinstance(exception, KeyboardInterrupt):
        return EXIT_ABORTED

    return EXIT_PARTIAL_FAILURE


__all__ = [
    # Base exception
    "MemoryImportError",
    # Validation
    "ValidationError",
    "InvalidJobError",
    "ConfigurationError",
    "MissingConfigurationError",
    "InvalidConfigurationError",
    "UnsupportedBackendError",
    # Segmentation
    "SegmentationError",
    "DocumentLoadError",
    "DocumentParseError",
    # Sink
    "SinkError",
    "EmbeddingError",
    "EmbeddingGenerationError",
    "MemoryStoreError",
    "MemoryStoreConnectionError",
    # Job control
    "JobAbortedError",
    # Utilities
    "EXIT_OK",
    "EXIT_PARTIAL_FAILURE",
    "EXIT_VALIDATION_FAILED",
    "EXIT_ABORTED",
    "get_exit_code",
]
