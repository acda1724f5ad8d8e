"""
Segmenters for the memory importer.

A segmenter turns the content of one file into an ordered sequence of
segments, each destined to become one memory unit:

- Text (.txt): one segment per sentence
- PDF (.pdf): one segment per layout line, pages in order
- CSV (.csv): one segment per raw line, rows are opaque text

Segmenters are generators. They read the file when iteration starts, touch
no memory backend and allocate no IDs, so iterating again over the same file
reproduces the same segments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, Sequence

import pysbd

from src.ingestion.formats import DocumentFormat, FileRef
from src.ingestion.layout import LayoutExtractor, PyMuPDFLayoutExtractor
from src.utils.exceptions import (
    DocumentLoadError,
    DocumentParseError,
    InvalidConfigurationError,
    SegmentationError,
)
from src.utils.logging import LoggerMixin


@dataclass(frozen=True)
class Segment:
    """
    Candidate memory unit text produced by a segmenter.

    Attributes:
        text: Text to embed and store. May be empty for CSV lines only.
        description: Richer label when the source format has one.
    """

    text: str
    description: str | None = None

    @property
    def label(self) -> str:
        """Description to store, falling back to the text itself."""
        return self.description if self.description is not None else self.text


SegmentHandler = Callable[[FileRef], Iterator[Segment]]

# Line terminators recognized by a line reader; \v, \f and unicode
# separators are kept inside the line.
LINE_BREAK = re.compile(r"\r\n|\r|\n")


class Segmenter(LoggerMixin):
    """
    Dispatches files to the segmenter registered for their format.

    Args:
        language: ISO 639-1 code used for sentence boundary detection.
        layout_extractor: PDF layout collaborator (default: PyMuPDF).
        encodings: Encodings tried in order when decoding text and CSV files.

    Example:
        >>> segmenter = Segmenter(language="en")
        >>> [s.text for s in segmenter.segment(FileRef.from_path("a.txt"))]
        ['Hello world.', 'This is a test.']
    """

    DEFAULT_ENCODINGS = ("utf-8-sig", "cp1252")

    def __init__(
        self,
        language: str = "en",
        layout_extractor: LayoutExtractor | None = None,
        encodings: Sequence[str] | None = None,
    ) -> None:
        try:
            self._sentence_splitter = pysbd.Segmenter(language=language, clean=False)
        except ValueError as e:
            raise InvalidConfigurationError(
                f"Unsupported sentence segmentation language: {language}",
                details={"language": language},
                cause=e,
            ) from e

        self.language = language
        self.layout_extractor = layout_extractor or PyMuPDFLayoutExtractor()
        self.encodings = tuple(encodings or self.DEFAULT_ENCODINGS)

        self.handlers: Dict[DocumentFormat, SegmentHandler] = {
            DocumentFormat.TEXT: self.segment_text,
            DocumentFormat.PDF: self.segment_pdf,
            DocumentFormat.CSV: self.segment_csv,
            DocumentFormat.UNSUPPORTED: self.segment_unsupported,
        }

        self.logger.info(
            "segmenter_initialized",
            language=language,
            formats=[f.value for f in self.handlers],
        )

    def segment(self, file_ref: FileRef) -> Iterator[Segment]:
        """
        Segment a file with the handler for its detected format.

        Args:
            file_ref: File to segment.

        Returns:
            Lazy iterator of segments in document order.

        Raises:
            SegmentationError: During iteration, if the file cannot be read
                or analyzed.
        """
        return self.handlers[file_ref.detected_format](file_ref)

    def segment_text(self, file_ref: FileRef) -> Iterator[Segment]:
        """Split a plain text file into sentences."""
        text = self._read_text(file_ref.path)
        if not text.strip():
            return

        for sentence in self._sentence_splitter.segment(text):
            sentence = sentence.strip()
            if sentence:
                yield Segment(text=sentence)

    def segment_pdf(self, file_ref: FileRef) -> Iterator[Segment]:
        """Flatten the layout lines of a PDF, page by page."""
        content = self._read_bytes(file_ref.path)
        pages = iter(self.layout_extractor.extract(content))

        while True:
            try:
                page = next(pages)
            except StopIteration:
                return
            except SegmentationError:
                raise
            except Exception as e:
                raise DocumentParseError(
                    f"Layout analysis failed for {file_ref.path}",
                    details={"file_path": str(file_ref.path)},
                    cause=e,
                ) from e

            self.logger.info(
                "pdf_page_loaded",
                file_path=str(file_ref.path),
                page=page.page_number,
                num_lines=len(page.lines),
            )

            for line in page.lines:
                line = line.strip()
                if line:
                    yield Segment(text=line)

    def segment_csv(self, file_ref: FileRef) -> Iterator[Segment]:
        """
        Yield every raw line of a CSV file, blank lines included.

        A terminator at the very end of the file does not start another
        line; an explicitly blank last line does.
        """
        text = self._read_text(file_ref.path)
        if not text:
            return

        lines = LINE_BREAK.split(text)
        if lines[-1] == "":
            lines.pop()

        for line in lines:
            yield Segment(text=line)

    def segment_unsupported(self, file_ref: FileRef) -> Iterator[Segment]:
        """Unsupported formats produce no segments."""
        return iter(())

    def _read_bytes(self, file_path: Path) -> bytes:
        try:
            return file_path.read_bytes()
        except OSError as e:
            self.logger.error("file_read_failed", file_path=str(file_path), error=str(e))
            raise DocumentLoadError(
                f"Could not read file {file_path}: {e.strerror or e}",
                details={"file_path": str(file_path)},
                cause=e,
            ) from e

    def _read_text(self, file_path: Path) -> str:
        """
        Read and decode a file, trying each configured encoding in turn.

        Raises:
            DocumentLoadError: If the file is unreadable or no encoding fits.
        """
        raw = self._read_bytes(file_path)

        for encoding in self.encodings:
            try:
                text = raw.decode(encoding)
            except (UnicodeDecodeError, UnicodeError):
                continue

            self.logger.debug(
                "file_decoded",
                file_path=str(file_path),
                encoding=encoding,
                content_length=len(text),
            )
            return text

        self.logger.error(
            "file_decode_failed",
            file_path=str(file_path),
            encodings_tried=list(self.encodings),
        )
        raise DocumentLoadError(
            f"Could not decode file {file_path} with encodings: {list(self.encodings)}",
            details={"file_path": str(file_path), "encodings": list(self.encodings)},
        )
