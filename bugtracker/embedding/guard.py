"""
Timeout wrapper around provider calls
"""

import asyncio

from bugtracker.core.config import settings
from bugtracker.core.exceptions import EmbeddingError, EmbeddingTimeoutError
from bugtracker.embedding.protocol import EmbeddingProviderProtocol


async def embed_with_timeout(
    provider: EmbeddingProviderProtocol,
    text: str,
    timeout_seconds: float | None = None,
) -> list[float]:
    """
    Call ``provider.embed`` bounded by a timeout.

    Raises:
        EmbeddingTimeoutError: If the provider does not answer in time
        EmbeddingError: If the provider fails or returns an empty vector
    """
    timeout = settings.embedding_timeout_seconds if timeout_seconds is None else timeout_seconds
    try:
        vector = await asyncio.wait_for(provider.embed(text), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise EmbeddingTimeoutError(
            f"Embedding provider timed out after {timeout}s",
            details={"timeout_seconds": timeout},
        ) from exc
    except EmbeddingError:
        raise
    except Exception as exc:
        raise EmbeddingError(f"Embedding provider failed: {exc}") from exc

    if not vector:
        raise EmbeddingError("Embedding provider returned an empty vector")
    return list(vector)
