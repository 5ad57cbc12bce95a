"""
Embedding Provider Protocol (Interface)
Defines contract for all embedding implementations
"""

from typing import Protocol


class EmbeddingProviderProtocol(Protocol):
    """
    Protocol for text embedding providers

    The provider is an opaque ``text -> vector`` function:
    - identical input yields the identical vector
    - every vector from one provider has the same fixed length
    - calls may fail or stall; callers own timeouts and degradation
    """

    model_name: str

    async def embed(self, text: str) -> list[float]:
        """
        Embed free text into a dense vector

        Args:
            text: Text to embed

        Returns:
            Fixed-length list of floats

        Raises:
            EmbeddingError: If the provider cannot produce a vector
        """
        ...

    async def warmup(self) -> None:
        """
        Load whatever the provider needs before serving requests
        """
        ...
