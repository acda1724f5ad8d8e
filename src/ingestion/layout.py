"""
PDF layout analysis.

The segmenter only needs an ordered page -> line structure from a PDF. Any
object with an ``extract`` method returning ``LayoutPage`` objects in page
order can stand in for the default PyMuPDF implementation, e.g. a client for
a hosted document-analysis service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Protocol

import fitz  # PyMuPDF

from src.utils.exceptions import DocumentParseError
from src.utils.logging import LoggerMixin


@dataclass(frozen=True)
class LayoutPage:
    """
    Lines of one PDF page in reading order.

    Attributes:
        page_number: 1-based page number.
        lines: Line contents, top to bottom.
    """

    page_number: int
    lines: List[str] = field(default_factory=list)


class LayoutExtractor(Protocol):
    """Turns PDF bytes into pages of lines."""

    def extract(self, content: bytes) -> Iterator[LayoutPage]:
        ...


class PyMuPDFLayoutExtractor(LoggerMixin):
    """
    Layout extractor using PyMuPDF's text dictionary.

    Each text line of the page layout becomes one line; its spans are
    concatenated. Blocks are sorted top-left to bottom-right so multi-block
    pages come out in reading order. Pages are yielded one at a time, the
    page count is never needed up front.

    Example:
        >>> extractor = PyMuPDFLayoutExtractor()
        >>> for page in extractor.extract(Path("report.pdf").read_bytes()):
        ...     print(page.page_number, len(page.lines))
    """

    TEXT_BLOCK = 0

    def extract(self, content: bytes) -> Iterator[LayoutPage]:
        """
        Extract pages of lines from PDF bytes.

        Raises:
            DocumentParseError: If the document cannot be opened or a page
                cannot be analyzed.
        """
        try:
            document = fitz.open(stream=content, filetype="pdf")
        except Exception as e:
            self.logger.error("pdf_open_failed", error=str(e), size=len(content))
            raise DocumentParseError(
                "Failed to open PDF document",
                details={"size": len(content)},
                cause=e,
            ) from e

        with document:
            for index, page in enumerate(document):
                try:
                    layout = page.get_text("dict", sort=True)
                except Exception as e:
                    raise DocumentParseError(
                        f"Failed to analyze PDF page {index + 1}",
                        details={"page": index + 1},
                        cause=e,
                    ) from e

                lines = [
                    "".join(span["text"] for span in line["spans"])
                    for block in layout["blocks"]
                    if block.get("type") == self.TEXT_BLOCK
                    for line in block["lines"]
                ]

                self.logger.debug("pdf_page_analyzed", page=index + 1, num_lines=len(lines))
                yield LayoutPage(page_number=index + 1, lines=lines)
