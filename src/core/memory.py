"""
Memory sinks for the memory importer.

A memory sink hides the embedding round trip and the vector store write
behind a single ``save`` call, so the ingestion pipeline never knows which
backend is active. Two backends are provided:

- ChromaDB over HTTP (self-hosted vector database)
- Azure AI Search (managed cloud search index)

Both backends upsert by ID: saving a unit whose ID already exists in the
collection replaces the stored record.
"""

from __future__ import annotations

import asyncio
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any
from urllib.parse import urlparse

import chromadb
from chromadb.api.models.Collection import Collection
from langchain_community.vectorstores.azuresearch import AzureSearch
from langchain_core.embeddings import Embeddings

from src.config.settings import AzureSearchSettings, ChromaSettings, Settings
from src.utils.exceptions import (
    EmbeddingGenerationError,
    InvalidConfigurationError,
    MemoryStoreConnectionError,
    MemoryStoreError,
    MissingConfigurationError,
    SinkError,
    UnsupportedBackendError,
)
from src.utils.logging import LoggerMixin, get_logger

logger = get_logger(__name__)


class MemoryType(str, Enum):
    """Supported memory backends."""

    CHROMA = "chroma"
    AZURE_SEARCH = "azuresearch"

    @classmethod
    def parse(cls, value: str) -> "MemoryType":
        """
        Parse a backend selector, ignoring case.

        Args:
            value: Backend selector given on the command line.

        Returns:
            The matching MemoryType.

        Raises:
            UnsupportedBackendError: If the selector is not recognized.

        Example:
            >>> MemoryType.parse("AzureSearch")
            <MemoryType.AZURE_SEARCH: 'azuresearch'>
        """
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise UnsupportedBackendError(
            "Not a supported memory type. Use '--help' for usage.",
            details={"memory_type": value, "supported": [m.value for m in cls]},
        )


class MemorySink(LoggerMixin, ABC):
    """
    Base class for memory sinks.

    Subclasses implement ``_upsert`` for one backend; embedding, vector
    validation and error translation live here.

    Args:
        embeddings: Embedding collaborator used to vectorize unit text.
        dimensions: Expected vector length.
    """

    memory_type: MemoryType

    def __init__(self, embeddings: Embeddings, dimensions: int = 1536) -> None:
        self.embeddings = embeddings
        self.dimensions = dimensions
        # Guards lazily created clients; _upsert runs in worker threads
        self._lock = threading.RLock()

    async def save(
        self,
        collection: str,
        memory_id: str,
        text: str,
        description: str,
    ) -> None:
        """
        Embed one memory unit and upsert it into a collection.

        Args:
            collection: Target collection (namespace) in the backend.
            memory_id: Unit ID, unique within the run.
            text: Text to embed and store.
            description: Label stored alongside the text.

        Raises:
            EmbeddingGenerationError: If the embedding round trip fails.
            MemoryStoreError: If the backend rejects the write.
        """
        vector = await self.embed(text)

        try:
            await asyncio.to_thread(
                self._upsert, collection, memory_id, text, description, vector
            )
        except SinkError:
            raise
        except Exception as e:
            self.logger.warning(
                "memory_upsert_failed",
                collection=collection,
                memory_id=memory_id,
                error=str(e),
            )
            raise MemoryStoreError(
                f"Failed to store memory {memory_id} in {collection}",
                details={"collection": collection, "memory_id": memory_id},
                cause=e,
            ) from e

        self.logger.debug("memory_saved", collection=collection, memory_id=memory_id)

    async def embed(self, text: str) -> list[float]:
        """
        Compute the embedding vector for a text.

        Raises:
            EmbeddingGenerationError: If the service fails or the vector has
                the wrong length.
        """
        try:
            vector = await asyncio.to_thread(self.embeddings.embed_query, text)
        except Exception as e:
            self.logger.warning("embedding_failed", error=str(e), text_length=len(text))
            raise EmbeddingGenerationError(
                "Failed to generate embedding",
                details={"text_length": len(text)},
                cause=e,
            ) from e

        if len(vector) != self.dimensions:
            raise EmbeddingGenerationError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}",
                details={"expected": self.dimensions, "actual": len(vector)},
            )
        return list(vector)

    async def connect(self) -> None:
        """Verify the backend is reachable. Default: nothing to check."""

    async def close(self) -> None:
        """Release backend clients."""

    @abstractmethod
    def _upsert(
        self,
        collection: str,
        memory_id: str,
        text: str,
        description: str,
        vector: list[float],
    ) -> None:
        """Write one record to the backend (blocking)."""


class ChromaMemorySink(MemorySink):
    """
    Memory sink backed by a ChromaDB server.

    Collections are created on first use and cached by name.

    Example:
        >>> sink = ChromaMemorySink("http://localhost:8000", ChromaSettings(), embeddings)
        >>> await sink.save("mycollection", "0", "Hello world.", "Hello world.")
    """

    memory_type = MemoryType.CHROMA

    DEFAULT_PORT = 8000

    def __init__(
        self,
        memory_url: str,
        settings: ChromaSettings,
        embeddings: Embeddings,
        dimensions: int = 1536,
    ) -> None:
        super().__init__(embeddings, dimensions)

        parsed = urlparse(memory_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise InvalidConfigurationError(
                f"Invalid ChromaDB URL: {memory_url!r}. Expected e.g. http://localhost:8000",
                details={"memory_url": memory_url},
            )

        self.settings = settings
        self.host = parsed.hostname
        self.ssl = parsed.scheme == "https"
        self.port = parsed.port or (443 if self.ssl else self.DEFAULT_PORT)
        self._client: chromadb.ClientAPI | None = None
        self._collections: dict[str, Collection] = {}

        self.logger.info(
            "chroma_memory_sink_initialized",
            host=self.host,
            port=self.port,
            ssl=self.ssl,
        )

    @property
    def client(self) -> chromadb.ClientAPI:
        """
        Get or create the ChromaDB client.

        Raises:
            MemoryStoreConnectionError: If unable to connect to ChromaDB.
        """
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._create_client()
        return self._client

    def _create_client(self) -> chromadb.ClientAPI:
        headers: dict[str, str] = {}
        token = self.settings.auth_token.get_secret_value()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            client = chromadb.HttpClient(
                host=self.host,
                port=self.port,
                ssl=self.ssl,
                headers=headers or None,
                tenant=self.settings.tenant,
                database=self.settings.database,
            )
            client.heartbeat()
        except Exception as e:
            self.logger.error(
                "chromadb_connection_failed",
                error=str(e),
                host=self.host,
                port=self.port,
            )
            raise MemoryStoreConnectionError(
                f"Failed to connect to ChromaDB at {self.host}:{self.port}",
                details={"host": self.host, "port": self.port},
                cause=e,
            ) from e

        self.logger.info("chromadb_connection_successful")
        return client

    def get_collection(self, name: str) -> Collection:
        """
        Get or create a ChromaDB collection.

        Args:
            name: Collection name.

        Returns:
            ChromaDB collection instance.
        """
        collection = self._collections.get(name)
        if collection is not None:
            return collection

        with self._lock:
            if name not in self._collections:
                collection = self.client.get_or_create_collection(
                    name=name,
                    metadata={"hnsw:space": self.settings.distance},
                )
                self._collections[name] = collection
                self.logger.info("collection_ready", collection=name, count=collection.count())
            return self._collections[name]

    async def connect(self) -> None:
        """Force client creation so connection errors surface before ingestion."""
        await asyncio.to_thread(lambda: self.client)

    async def close(self) -> None:
        self._collections.clear()
        self._client = None

    def _upsert(
        self,
        collection: str,
        memory_id: str,
        text: str,
        description: str,
        vector: list[float],
    ) -> None:
        self.get_collection(collection).upsert(
            ids=[memory_id],
            embeddings=[vector],
            documents=[text],
            metadatas=[{"description": description}],
        )


class AzureSearchMemorySink(MemorySink):
    """
    Memory sink backed by an Azure AI Search index.

    Each collection maps to one search index, created on first use with a
    vector field sized to the configured embedding dimensions. Documents are
    uploaded by key, which replaces any document with the same key.

    Example:
        >>> sink = AzureSearchMemorySink(
        ...     "https://my-search.search.windows.net", AzureSearchSettings(), embeddings
        ... )
        >>> await sink.save("mycollection", "0", "Hello world.", "Hello world.")
    """

    memory_type = MemoryType.AZURE_SEARCH

    def __init__(
        self,
        memory_url: str,
        settings: AzureSearchSettings,
        embeddings: Embeddings,
        dimensions: int = 1536,
    ) -> None:
        super().__init__(embeddings, dimensions)

        api_key = settings.api_key.get_secret_value()
        if not api_key:
            raise MissingConfigurationError(
                "Please set AZURE_SEARCH_API_KEY with your Azure AI Search API key.",
                details={"memory_type": self.memory_type.value},
            )

        parsed = urlparse(memory_url)
        if parsed.scheme != "https" or not parsed.hostname:
            raise InvalidConfigurationError(
                f"Invalid Azure AI Search endpoint: {memory_url!r}. "
                "Expected e.g. https://my-search.search.windows.net",
                details={"memory_url": memory_url},
            )

        self.endpoint = memory_url.rstrip("/")
        self._api_key = api_key
        self._stores: dict[str, AzureSearch] = {}

        self.logger.info("azure_search_memory_sink_initialized", endpoint=self.endpoint)

    def get_store(self, index_name: str) -> AzureSearch:
        """
        Get or create the LangChain AzureSearch store for an index.

        Raises:
            MemoryStoreConnectionError: If the index cannot be reached or created.
        """
        store = self._stores.get(index_name)
        if store is not None:
            return store

        with self._lock:
            if index_name not in self._stores:
                try:
                    store = AzureSearch(
                        azure_search_endpoint=self.endpoint,
                        azure_search_key=self._api_key,
                        index_name=index_name,
                        embedding_function=self.embeddings,
                        vector_search_dimensions=self.dimensions,
                    )
                except Exception as e:
                    self.logger.error(
                        "azure_search_index_unavailable",
                        index=index_name,
                        error=str(e),
                    )
                    raise MemoryStoreConnectionError(
                        f"Failed to open Azure AI Search index {index_name}",
                        details={"endpoint": self.endpoint, "index": index_name},
                        cause=e,
                    ) from e
                self._stores[index_name] = store
                self.logger.info("index_ready", index=index_name)
            return self._stores[index_name]

    async def close(self) -> None:
        self._stores.clear()

    def _upsert(
        self,
        collection: str,
        memory_id: str,
        text: str,
        description: str,
        vector: list[float],
    ) -> None:
        self.get_store(collection).add_embeddings(
            [(text, vector)],
            metadatas=[{"description": description}],
            keys=[memory_id],
        )


def create_memory_sink(
    memory_type: str | MemoryType,
    memory_url: str,
    settings: Settings,
    embeddings: Embeddings | None = None,
) -> MemorySink:
    """
    Create the memory sink for a backend selector.

    This is the only place that branches on the backend kind.

    Args:
        memory_type: Backend selector ("chroma" or "azuresearch", any case).
        memory_url: Backend endpoint URL.
        settings: Application settings (credentials, dimensions).
        embeddings: Optional embeddings instance. If None, creates from settings.

    Returns:
        A configured MemorySink.

    Raises:
        UnsupportedBackendError: If the selector is unknown.
        MissingConfigurationError: If a required credential is absent.
    """
    kind = memory_type if isinstance(memory_type, MemoryType) else MemoryType.parse(memory_type)

    if not memory_url:
        raise MissingConfigurationError(
            "A memory URL is required. Use '--help' for usage.",
            details={"memory_type": kind.value},
        )

    if embeddings is None:
        from src.core.embeddings import get_embeddings

        embeddings = get_embeddings(settings.embedding)

    dimensions = settings.embedding.embedding_dimensions
    logger.info("creating_memory_sink", memory_type=kind.value, memory_url=memory_url)

    sink_kwargs: dict[str, Any] = {"embeddings": embeddings, "dimensions": dimensions}
    if kind is MemoryType.CHROMA:
        return ChromaMemorySink(memory_url, settings.chroma, **sink_kwargs)
    return AzureSearchMemorySink(memory_url, settings.azure_search, **sink_kwargs)
