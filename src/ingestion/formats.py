"""
Input file formats understood by the importer.

Format detection is by file extension only; the content is never sniffed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class DocumentFormat(str, Enum):
    """Closed set of input formats, one segmenter handler per member."""

    TEXT = "text"
    PDF = "pdf"
    CSV = "csv"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_path(cls, path: str | Path) -> "DocumentFormat":
        """
        Detect the format of a file from its extension.

        Example:
            >>> DocumentFormat.from_path("notes.TXT")
            <DocumentFormat.TEXT: 'text'>
            >>> DocumentFormat.from_path("slides.pptx")
            <DocumentFormat.UNSUPPORTED: 'unsupported'>
        """
        return EXTENSIONS.get(Path(path).suffix.lower(), cls.UNSUPPORTED)

    @property
    def is_supported(self) -> bool:
        return self is not DocumentFormat.UNSUPPORTED


EXTENSIONS: dict[str, DocumentFormat] = {
    ".txt": DocumentFormat.TEXT,
    ".pdf": DocumentFormat.PDF,
    ".csv": DocumentFormat.CSV,
}


@dataclass(frozen=True)
class FileRef:
    """
    One input file of an ingestion job.

    Attributes:
        path: Path to the file as supplied by the caller.
        detected_format: Format resolved from the extension.
    """

    path: Path
    detected_format: DocumentFormat

    @classmethod
    def from_path(cls, path: str | Path) -> "FileRef":
        path = Path(path)
        return cls(path=path, detected_format=DocumentFormat.from_path(path))

    @property
    def name(self) -> str:
        return self.path.name

    def __str__(self) -> str:
        return str(self.path)
