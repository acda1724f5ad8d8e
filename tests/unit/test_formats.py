"""
Tests for format detection and sequential ID allocation.

Uses pytest for unit tests and Hypothesis for property-based testing.
"""

from pathlib import Path

import pytest
from hypothesis import given, settings as hypothesis_settings
from hypothesis import strategies as st

from src.ingestion.formats import DocumentFormat, FileRef
from src.ingestion.identity import IdentityAllocator
from tests.strategies import supported_extension, unsupported_extension, valid_filename


class TestDocumentFormat:
    """Tests for extension-based format detection."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("a.txt", DocumentFormat.TEXT),
            ("docs/report.pdf", DocumentFormat.PDF),
            ("rows.csv", DocumentFormat.CSV),
            ("NOTES.TXT", DocumentFormat.TEXT),
            ("Report.Pdf", DocumentFormat.PDF),
            ("archive.tar.csv", DocumentFormat.CSV),
        ],
    )
    def test_supported_extensions(self, path, expected):
        assert DocumentFormat.from_path(path) is expected
        assert expected.is_supported

    @pytest.mark.parametrize("path", ["readme.md", "slides.pptx", "Makefile", "data.csv.bak", ".txt"])
    def test_unsupported_extensions(self, path):
        assert DocumentFormat.from_path(path) is DocumentFormat.UNSUPPORTED
        assert not DocumentFormat.UNSUPPORTED.is_supported

    @given(valid_filename(), supported_extension())
    @hypothesis_settings(max_examples=50)
    def test_detection_ignores_case(self, stem: str, ext: str) -> None:
        """Property: Extension case never changes the detected format."""
        assert DocumentFormat.from_path(stem + ext) is DocumentFormat.from_path(stem + ext.lower())
        assert DocumentFormat.from_path(stem + ext).is_supported

    @given(valid_filename(), unsupported_extension())
    @hypothesis_settings(max_examples=30)
    def test_other_extensions_unsupported(self, stem: str, ext: str) -> None:
        assert DocumentFormat.from_path(stem + ext) is DocumentFormat.UNSUPPORTED


class TestFileRef:
    """Tests for FileRef."""

    def test_from_path(self):
        ref = FileRef.from_path("docs/a.TXT")
        assert ref.path == Path("docs/a.TXT")
        assert ref.detected_format is DocumentFormat.TEXT
        assert ref.name == "a.TXT"
        assert str(ref) == str(Path("docs/a.TXT"))

    def test_is_immutable(self):
        ref = FileRef.from_path("a.txt")
        with pytest.raises(AttributeError):
            ref.path = Path("b.txt")  # type: ignore[misc]


class TestIdentityAllocator:
    """Tests for sequential ID allocation."""

    def test_starts_at_zero(self):
        allocator = IdentityAllocator()
        assert [allocator.next() for _ in range(3)] == ["0", "1", "2"]
        assert allocator.cursor == 3
        assert allocator.issued == 3

    def test_custom_start(self):
        allocator = IdentityAllocator(start=100)
        assert allocator.next() == "100"
        assert allocator.start == 100
        assert allocator.issued == 1

    def test_negative_start_rejected(self):
        with pytest.raises(ValueError):
            IdentityAllocator(start=-1)

    def test_repr(self):
        allocator = IdentityAllocator(start=5)
        allocator.next()
        assert repr(allocator) == "IdentityAllocator(start=5, cursor=6)"

    @given(st.integers(min_value=0, max_value=10**6), st.integers(min_value=1, max_value=200))
    @hypothesis_settings(max_examples=50)
    def test_ids_are_dense_and_increasing(self, start: int, count: int) -> None:
        """Property: IDs are consecutive integers with no gaps or repeats."""
        allocator = IdentityAllocator(start=start)
        ids = [int(allocator.next()) for _ in range(count)]
        assert ids == list(range(start, start + count))
        assert allocator.cursor == start + count
