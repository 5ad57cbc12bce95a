"""
Mock Embedding Provider
Deterministic hashing embedder for development and testing without a model.
"""

import hashlib
import math
import re

from bugtracker.core.config import settings
from bugtracker.core.logging import get_logger

logger = get_logger(__name__)

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


class HashingEmbeddingProvider:
    """
    Bag-of-words feature hashing into a fixed number of buckets.

    Texts sharing vocabulary land close together, which is enough to
    exercise duplicate detection end to end. Output is L2-normalized;
    text without any token yields the zero vector.
    """

    def __init__(self, dimension: int | None = None, model_name: str = "hashing-mock"):
        self.dimension = dimension or settings.embedding_dimension
        self.model_name = model_name
        logger.info("mock_embedding_provider_initialized", dimension=self.dimension)

    async def warmup(self) -> None:
        return None

    async def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for token in _TOKEN_PATTERN.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dimension
            sign = 1.0 if digest[4] % 2 == 0 else -1.0
            vector[bucket] += sign

        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [value / norm for value in vector]
