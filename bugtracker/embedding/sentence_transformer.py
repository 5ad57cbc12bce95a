"""
Sentence-Transformers Embedding Provider

Runs a local sentence-transformers model (all-MiniLM-L6-v2 by default).
Model loading and encode() are blocking, so both run in the default
threadpool executor; a semaphore bounds concurrent encodes.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from sentence_transformers import SentenceTransformer

from bugtracker.core.config import settings
from bugtracker.core.exceptions import EmbeddingError
from bugtracker.core.logging import get_logger, log_embedding_call

logger = get_logger(__name__)


class SentenceTransformerEmbeddingProvider:
    """
    Async-safe embedding provider backed by a local SentenceTransformer.

    Instances are independent: each owns its model handle, load lock and
    semaphore, so tests may build as many as they like. The application
    shares one through the factory.
    """

    def __init__(
        self,
        model_name: str | None = None,
        *,
        device: str | None = None,
        max_concurrency: int | None = None,
        load_timeout_seconds: float = 300,
    ) -> None:
        self.model_name = model_name or settings.embedding_model_name
        self.device = device or settings.embedding_device
        self.max_concurrency = max_concurrency or settings.embedding_max_concurrency
        self.load_timeout_seconds = load_timeout_seconds
        self.model: Optional[SentenceTransformer] = None
        self._initialized: bool = False
        self._load_lock = asyncio.Lock()
        self._semaphore: Optional[asyncio.Semaphore] = None

        logger.info(
            "embedding_provider_created",
            model_name=self.model_name,
            device=self.device,
            max_concurrency=self.max_concurrency,
        )

    async def warmup(self) -> None:
        """
        Load the model so the first request does not pay for the download.

        Raises:
            EmbeddingError: If model loading fails or times out
        """
        if self._initialized:
            logger.debug("embedding_provider_already_warmed")
            return

        async with self._load_lock:
            if self._initialized:
                return

            t0 = time.perf_counter()
            logger.info(
                "embedding_provider_warming_start",
                model_name=self.model_name,
                device=self.device,
            )

            try:
                loop = asyncio.get_running_loop()
                self.model = await asyncio.wait_for(
                    loop.run_in_executor(
                        None,
                        lambda: SentenceTransformer(self.model_name, device=self.device),
                    ),
                    timeout=self.load_timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                logger.error(
                    "embedding_provider_warmup_timeout",
                    model_name=self.model_name,
                    error=str(e),
                )
                raise EmbeddingError(f"Timeout loading embedding model {self.model_name}")
            except Exception as e:
                logger.error(
                    "embedding_provider_warmup_failed",
                    model_name=self.model_name,
                    error=str(e),
                )
                raise EmbeddingError(
                    f"Failed to load embedding model {self.model_name}: {e}"
                ) from e

            self._semaphore = asyncio.Semaphore(self.max_concurrency)
            self._initialized = True
            logger.info(
                "embedding_provider_warmed",
                model_name=self.model_name,
                elapsed_seconds=f"{time.perf_counter() - t0:.2f}",
            )

    async def embed(self, text: str) -> list[float]:
        """
        Embed text with the loaded model (lazy warmup as fallback).

        Raises:
            EmbeddingError: If encoding fails or yields an empty vector
        """
        if not self._initialized:
            logger.warning("embedding_provider_lazy_initialization")
            await self.warmup()

        t0 = time.perf_counter()
        try:
            embedding = await self._encode_async(text)
        except Exception as e:
            log_embedding_call(
                operation="embed",
                model=self.model_name,
                latency_ms=(time.perf_counter() - t0) * 1000,
                error=str(e),
            )
            raise EmbeddingError(f"Failed to embed text: {e}") from e

        log_embedding_call(
            operation="embed",
            model=self.model_name,
            latency_ms=(time.perf_counter() - t0) * 1000,
            dimension=len(embedding),
        )
        return embedding

    async def _encode_async(self, text: str) -> list[float]:
        """
        Run SentenceTransformer.encode() in the executor under the semaphore.

        Raises:
            RuntimeError: If the model is not loaded
            ValueError: If encoding produces an empty vector
        """
        if self.model is None or self._semaphore is None:
            raise RuntimeError("Model not initialized. Call warmup() first.")

        loop = asyncio.get_running_loop()
        model = self.model

        async with self._semaphore:
            embedding_array = await loop.run_in_executor(
                None,
                lambda: model.encode(text, normalize_embeddings=True),
            )

        embedding_list = [float(value) for value in embedding_array.tolist()]
        if not embedding_list:
            raise ValueError("Invalid embedding output: empty vector")

        return embedding_list
