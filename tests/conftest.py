"""
Pytest configuration and shared fixtures.

This module provides:
- Shared fixtures for all tests
- Hypothesis profile configuration
- Test environment setup
"""

import os
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import fitz
import pytest
from hypothesis import settings as hypothesis_settings, Verbosity

from src.core.memory import MemorySink
from src.utils.exceptions import MemoryStoreError

# Configure Hypothesis profiles
hypothesis_settings.register_profile(
    "ci",
    max_examples=100,
    deadline=1000,
    verbosity=Verbosity.normal,
)
hypothesis_settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
    verbosity=Verbosity.verbose,
)
hypothesis_settings.register_profile(
    "debug",
    max_examples=10,
    deadline=None,
    verbosity=Verbosity.verbose,
)

# Load profile from environment or use dev
profile = os.environ.get("HYPOTHESIS_PROFILE", "dev")
hypothesis_settings.load_profile(profile)


class RecordingSink(MemorySink):
    """
    In-memory sink recording every upsert.

    ``records`` maps (collection, id) to (text, description) with replace
    semantics, like the real backends. ``calls`` keeps every save in order.
    Units whose text is listed in ``fail_texts`` fail the given number of
    times before succeeding (or forever with a negative count).
    """

    def __init__(self, fail_texts: dict[str, int] | None = None) -> None:
        super().__init__(embeddings=MagicMock(), dimensions=3)
        self.records: dict[tuple[str, str], tuple[str, str]] = {}
        self.calls: list[tuple[str, str, str, str]] = []
        self.fail_texts = dict(fail_texts or {})
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True

    async def save(self, collection: str, memory_id: str, text: str, description: str) -> None:
        self.calls.append((collection, memory_id, text, description))
        remaining = self.fail_texts.get(text, 0)
        if remaining != 0:
            self.fail_texts[text] = remaining - 1
            raise MemoryStoreError(f"Backend rejected {memory_id}")
        self._upsert(collection, memory_id, text, description, [0.0, 0.0, 0.0])

    def _upsert(self, collection, memory_id, text, description, vector) -> None:
        self.records[(collection, memory_id)] = (text, description)

    def ids(self, collection: str = "notes") -> list[str]:
        return sorted((mid for c, mid in self.records if c == collection), key=int)

    def texts(self, collection: str = "notes") -> list[str]:
        return [self.records[(collection, mid)][0] for mid in self.ids(collection)]


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Create an in-memory recording sink."""
    return RecordingSink()


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Fixture to set environment variables for testing."""
    env_vars = {
        "OPENAI_API_KEY": "sk-test-key",
        "EMBEDDING_PROVIDER": "openai",
        "AZURE_SEARCH_API_KEY": "search-test-key",
        "LOG_LEVEL": "DEBUG",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture
def mock_embeddings() -> MagicMock:
    """Create mock embeddings that return consistent vectors."""
    mock = MagicMock()
    # Return a 1536-dimensional vector (OpenAI ada-002 dimension)
    mock.embed_documents.return_value = [[0.1] * 1536]
    mock.embed_query.return_value = [0.1] * 1536
    return mock


@pytest.fixture
def mock_chromadb_client() -> MagicMock:
    """Create a mock ChromaDB client."""
    mock = MagicMock()
    mock_collection = MagicMock()
    mock_collection.upsert.return_value = None
    mock.get_or_create_collection.return_value = mock_collection
    mock.heartbeat.return_value = 1
    return mock


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Reset the run ID between tests."""
    from src.utils.logging import clear_run_id

    clear_run_id()
    yield
    clear_run_id()


@pytest.fixture
def make_pdf(tmp_path: Path):
    """Build a PDF whose pages contain the given lines."""

    def _make(pages: list[list[str]], name: str = "doc.pdf") -> Path:
        path = tmp_path / name
        document = fitz.open()
        for lines in pages:
            page = document.new_page()
            for i, line in enumerate(lines):
                page.insert_text((72, 72 + i * 24), line, fontsize=11)
        document.save(str(path))
        document.close()
        return path

    return _make


@pytest.fixture
def temp_document_dir(tmp_path: Path, make_pdf) -> Path:
    """Create a temporary directory with one file of every supported format."""
    (tmp_path / "a.txt").write_text("Hello world. This is a test.", encoding="utf-8")
    (tmp_path / "b.csv").write_text("x,y\n1,2\n", encoding="utf-8")
    make_pdf([["Title", "Body"]], name="c.pdf")
    return tmp_path


# Markers for test categorization
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "slow: Slow tests")
