"""Embedding gateway.

The pipeline only depends on the ``Embedder`` capability. ``OllamaEmbedder``
backs it with the Ollama embeddings endpoint and turns every provider failure
into ``EmbeddingProviderError``.
"""
import asyncio
from typing import List, Optional, Protocol, Sequence

import httpx
import structlog

from askdocs import config
from askdocs.errors import EmbeddingProviderError
from askdocs.llm_client import OllamaClient, ollama_client

logger = structlog.get_logger()


class Embedder(Protocol):
    """Text to fixed-length vector capability."""

    async def embed(self, text: str) -> List[float]:
        ...

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        ...


class OllamaEmbedder:
    """Embedder backed by an Ollama embedding model."""

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        model: str = None,
        batch_size: int = None,
    ):
        """Initialize the embedder.

        Args:
            client: Ollama client (defaults to the shared client)
            model: Embedding model name (default from config)
            batch_size: Number of embedding requests sent concurrently
        """
        self.client = client or ollama_client
        self.model = model or config.EMBEDDING_MODEL
        self.batch_size = batch_size or config.EMBEDDING_BATCH_SIZE

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Raises:
            EmbeddingProviderError: If the provider fails or returns nothing
        """
        try:
            response = await self.client.embeddings(prompt=text, model=self.model)
        except httpx.HTTPError as e:
            logger.error(
                "embedding_generation_failed",
                model=self.model,
                text_preview=text[:100],
                error=str(e),
                error_type=type(e).__name__,
            )
            raise EmbeddingProviderError(f"Failed to generate embedding: {e}") from e

        embedding = response.get("embedding") or []
        if not embedding:
            logger.error("empty_embedding_returned", model=self.model)
            raise EmbeddingProviderError("Empty embedding returned from Ollama")

        return [float(x) for x in embedding]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed many texts, preserving input order.

        Requests go out concurrently in groups of ``batch_size``. The first
        failure aborts the whole batch.
        """
        if not texts:
            return []

        embeddings: List[List[float]] = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            embeddings.extend(
                await asyncio.gather(*(self.embed(text) for text in batch))
            )

            logger.debug(
                "embeddings_batch_generated",
                batch_size=len(batch),
                total_so_far=len(embeddings),
            )

        return embeddings
