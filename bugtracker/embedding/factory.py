"""
Embedding Provider Factory
Creates the configured embedding provider
"""

from bugtracker.core.config import settings
from bugtracker.core.logging import get_logger
from bugtracker.embedding.mock import HashingEmbeddingProvider
from bugtracker.embedding.protocol import EmbeddingProviderProtocol

logger = get_logger(__name__)


def create_embedding_provider(provider_type: str | None = None) -> EmbeddingProviderProtocol:
    """
    Build a new embedding provider

    Args:
        provider_type: Override for ``settings.embedding_provider``

    Raises:
        ValueError: If the provider type is not supported
    """
    provider_type = provider_type or settings.embedding_provider
    logger.info("embedding_provider_factory", provider_type=provider_type)

    if provider_type == "mock":
        return HashingEmbeddingProvider()

    if provider_type == "sentence_transformers":
        # Deferred: importing sentence-transformers pulls in torch.
        from bugtracker.embedding.sentence_transformer import (
            SentenceTransformerEmbeddingProvider,
        )

        return SentenceTransformerEmbeddingProvider()

    raise ValueError(
        f"Unsupported embedding_provider: {provider_type}. "
        "Supported types: sentence_transformers, mock"
    )


# Shared instance for dependency injection
_embedding_provider: EmbeddingProviderProtocol | None = None


def get_embedding_provider() -> EmbeddingProviderProtocol:
    """
    Get the application's shared embedding provider

    Services receive it through their constructor; nothing else reads
    this module-level handle.
    """
    global _embedding_provider
    if _embedding_provider is None:
        _embedding_provider = create_embedding_provider()
    return _embedding_provider
