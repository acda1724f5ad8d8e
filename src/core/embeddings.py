"""
Embeddings factory for the memory importer.

This module provides a factory pattern for creating the embedding
collaborator used by memory sinks, supporting multiple providers
(OpenAI, Azure OpenAI, HuggingFace, Ollama).
"""

from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_openai import AzureOpenAIEmbeddings, OpenAIEmbeddings

from src.config.settings import EmbeddingSettings
from src.utils.exceptions import InvalidConfigurationError, MissingConfigurationError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class EmbeddingsFactory:
    """Factory class for creating embedding model instances."""

    @staticmethod
    def create(settings: EmbeddingSettings) -> Embeddings:
        """
        Create an embeddings instance based on provider settings.

        Args:
            settings: Embedding configuration settings.

        Returns:
            A LangChain Embeddings instance.

        Raises:
            MissingConfigurationError: If a credential or endpoint required by
                the provider is missing.
            InvalidConfigurationError: If the provider is not supported.

        Example:
            >>> from src.config.settings import EmbeddingSettings
            >>> settings = EmbeddingSettings(embedding_provider="openai", openai_api_key="sk-...")
            >>> embeddings = EmbeddingsFactory.create(settings)
        """
        logger.info(
            "creating_embeddings",
            provider=settings.embedding_provider,
            model=settings.embedding_model,
        )

        api_key = settings.openai_api_key.get_secret_value()

        if settings.embedding_provider == "openai":
            if not api_key:
                raise MissingConfigurationError(
                    "Please set OPENAI_API_KEY with your OpenAI API key.",
                    details={"provider": "openai"},
                )
            return EmbeddingsFactory.create_openai(
                api_key=api_key,
                model=settings.embedding_model,
            )
        elif settings.embedding_provider == "azure_openai":
            if not api_key:
                raise MissingConfigurationError(
                    "Please set OPENAI_API_KEY with your Azure OpenAI API key.",
                    details={"provider": "azure_openai"},
                )
            if not settings.azure_openai_endpoint:
                raise MissingConfigurationError(
                    "Please set AZURE_OPENAI_ENDPOINT with your Azure OpenAI endpoint.",
                    details={"provider": "azure_openai"},
                )
            return EmbeddingsFactory.create_azure_openai(
                api_key=api_key,
                endpoint=settings.azure_openai_endpoint,
                deployment=settings.embedding_model,
                api_version=settings.azure_openai_api_version,
            )
        elif settings.embedding_provider == "huggingface":
            return EmbeddingsFactory.create_huggingface(
                model_name=settings.huggingface_embedding_model,
            )
        elif settings.embedding_provider == "ollama":
            return EmbeddingsFactory.create_ollama(
                model=settings.embedding_model,
                base_url=settings.ollama_base_url,
            )
        else:
            raise InvalidConfigurationError(
                f"Unsupported embedding provider: {settings.embedding_provider}. "
                f"Supported providers: openai, azure_openai, huggingface, ollama"
            )

    @staticmethod
    def create_openai(
        api_key: str,
        model: str = "text-embedding-ada-002",
        **kwargs: Any,
    ) -> OpenAIEmbeddings:
        """
        Create an OpenAI embeddings instance.

        Args:
            api_key: OpenAI API key.
            model: Embedding model name.
            **kwargs: Additional arguments passed to OpenAIEmbeddings.

        Returns:
            OpenAIEmbeddings instance.
        """
        logger.info("creating_openai_embeddings", model=model)

        return OpenAIEmbeddings(
            api_key=api_key,
            model=model,
            **kwargs,
        )

    @staticmethod
    def create_azure_openai(
        api_key: str,
        endpoint: str,
        deployment: str = "text-embedding-ada-002",
        api_version: str = "2024-02-01",
        **kwargs: Any,
    ) -> AzureOpenAIEmbeddings:
        """
        Create an Azure OpenAI embeddings instance.

        Args:
            api_key: Azure OpenAI API key.
            endpoint: Azure OpenAI resource endpoint.
            deployment: Name of the embedding model deployment.
            api_version: Azure OpenAI API version.
            **kwargs: Additional arguments passed to AzureOpenAIEmbeddings.

        Returns:
            AzureOpenAIEmbeddings instance.

        Example:
            >>> embeddings = EmbeddingsFactory.create_azure_openai(
            ...     api_key="...",
            ...     endpoint="https://my-resource.openai.azure.com/",
            ...     deployment="text-embedding-ada-002",
            ... )
        """
        logger.info(
            "creating_azure_openai_embeddings",
            deployment=deployment,
            endpoint=endpoint,
        )

        return AzureOpenAIEmbeddings(
            api_key=api_key,
            azure_endpoint=endpoint,
            azure_deployment=deployment,
            openai_api_version=api_version,
            **kwargs,
        )

    @staticmethod
    def create_huggingface(
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        **kwargs: Any,
    ) -> Embeddings:
        """
        Create a HuggingFace embeddings instance.

        Args:
            model_name: HuggingFace model name.
            **kwargs: Additional arguments passed to HuggingFaceEmbeddings.

        Returns:
            HuggingFaceEmbeddings instance.
        """
        try:
            from langchain_huggingface import HuggingFaceEmbeddings
        except ImportError:
            raise ImportError(
                "langchain-huggingface is not installed. "
                "Install it with: pip install 'memory-importer[huggingface]'"
            )

        logger.info("creating_huggingface_embeddings", model_name=model_name)

        return HuggingFaceEmbeddings(
            model_name=model_name,
            **kwargs,
        )

    @staticmethod
    def create_ollama(
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        **kwargs: Any,
    ) -> Embeddings:
        """
        Create an Ollama embeddings instance.

        Args:
            model: Ollama model name.
            base_url: Ollama server URL.
            **kwargs: Additional arguments passed to OllamaEmbeddings.

        Returns:
            OllamaEmbeddings instance.
        """
        try:
            from langchain_ollama import OllamaEmbeddings
        except ImportError:
            raise ImportError(
                "langchain-ollama is not installed. "
                "Install it with: pip install 'memory-importer[ollama]'"
            )

        logger.info(
            "creating_ollama_embeddings",
            model=model,
            base_url=base_url,
        )

        return OllamaEmbeddings(
            model=model,
            base_url=base_url,
            **kwargs,
        )


def get_embeddings(settings: EmbeddingSettings | None = None) -> Embeddings:
    """
    Convenience function to get an embeddings instance.

    Args:
        settings: Optional embedding settings. If None, loads from environment.

    Returns:
        A LangChain Embeddings instance.

    Example:
        >>> embeddings = get_embeddings()
        >>> vector = embeddings.embed_query("Hello world.")
    """
    if settings is None:
        from src.config.settings import get_settings

        settings = get_settings().embedding

    return EmbeddingsFactory.create(settings)
