"""
Embedding Provider Abstraction
Opaque text -> vector providers consumed by the duplicate pipeline
"""

from bugtracker.embedding.protocol import EmbeddingProviderProtocol
from bugtracker.embedding.factory import create_embedding_provider, get_embedding_provider
from bugtracker.embedding.guard import embed_with_timeout

__all__ = [
    "EmbeddingProviderProtocol",
    "create_embedding_provider",
    "embed_with_timeout",
    "get_embedding_provider",
]
