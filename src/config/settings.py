"""
Configuration settings for the memory importer.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files with validation and type safety. Credentials are
only ever read from the environment; the command line selects the backend,
its endpoint and the collection.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    embedding_provider: Literal["openai", "azure_openai", "huggingface", "ollama"] = Field(
        default="openai",
        description="Embedding provider",
    )
    embedding_model: str = Field(
        default="text-embedding-ada-002",
        description="Embedding model name (deployment name for Azure OpenAI)",
    )
    embedding_dimensions: int = Field(
        default=1536,
        ge=1,
        le=8192,
        description="Length of the vectors produced by the embedding model",
    )
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI or Azure OpenAI API key",
    )
    azure_openai_endpoint: str = Field(
        default="",
        description="Azure OpenAI endpoint, e.g. https://my-resource.openai.azure.com/",
    )
    azure_openai_api_version: str = Field(
        default="2024-02-01",
        description="Azure OpenAI API version",
    )
    huggingface_embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="HuggingFace embedding model",
    )
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama base URL for embeddings",
    )


class ChromaSettings(BaseSettings):
    """ChromaDB configuration (self-hosted memory backend)."""

    model_config = SettingsConfigDict(env_prefix="CHROMA_")

    tenant: str = Field(
        default="default_tenant",
        description="ChromaDB tenant",
    )
    database: str = Field(
        default="default_database",
        description="ChromaDB database",
    )
    auth_token: SecretStr = Field(
        default=SecretStr(""),
        description="Optional bearer token sent to the ChromaDB server",
    )
    distance: Literal["cosine", "l2", "ip"] = Field(
        default="cosine",
        description="HNSW distance function for newly created collections",
    )


class AzureSearchSettings(BaseSettings):
    """Azure AI Search configuration (managed memory backend)."""

    model_config = SettingsConfigDict(env_prefix="AZURE_SEARCH_")

    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Azure AI Search admin API key",
    )


class IngestionSettings(BaseSettings):
    """Ingestion pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="INGEST_")

    language: str = Field(
        default="en",
        min_length=2,
        max_length=3,
        description="ISO 639-1 language code used for sentence segmentation",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Save attempts per memory unit before it is skipped",
    )
    initial_retry_delay: float = Field(
        default=0.5,
        ge=0.0,
        le=60.0,
        description="Delay before the first retry in seconds",
    )
    retry_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier",
    )
    max_retry_delay: float = Field(
        default=8.0,
        ge=0.0,
        le=300.0,
        description="Upper bound for a single retry delay in seconds",
    )
    max_concurrency: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Concurrent save calls (IDs are always assigned in order)",
    )
    progress_every: int = Field(
        default=10,
        ge=1,
        le=10000,
        description="Report progress every N units within a file",
    )

    @field_validator("language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        """Language codes are lower case."""
        return v.lower()

    @model_validator(mode="after")
    def validate_retry_delays(self) -> "IngestionSettings":
        """Ensure the initial delay does not exceed the cap."""
        if self.initial_retry_delay > self.max_retry_delay:
            raise ValueError("initial_retry_delay must not exceed max_retry_delay")
        return self


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log format",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="memory-importer",
        description="Application name",
    )

    # Nested settings
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    chroma: ChromaSettings = Field(default_factory=ChromaSettings)
    azure_search: AzureSearchSettings = Field(default_factory=AzureSearchSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached after first load. Call `get_settings.cache_clear()`
        to reload settings from environment.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings from environment.

    Returns:
        Settings: Fresh application settings instance.
    """
    get_settings.cache_clear()
    return get_settings()
