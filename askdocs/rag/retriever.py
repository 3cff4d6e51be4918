"""Retriever for semantic search over ingested documents.

Handles:
- Query validation
- Query embedding generation
- Top-k ranking against the vector store
"""
from typing import List, Optional
import structlog

from askdocs import config
from askdocs.errors import InvalidArgumentError
from askdocs.rag.embeddings import Embedder
from askdocs.rag.store import RetrievalResult, VectorStore

logger = structlog.get_logger()

__all__ = ["Retriever", "RetrievalResult", "validate_top_k"]


def validate_top_k(top_k) -> int:
    """Return top_k if it is a positive integer.

    Raises:
        InvalidArgumentError: Otherwise
    """
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
        raise InvalidArgumentError(f"k must be a positive integer, got {top_k!r}")
    return top_k


class Retriever:
    """Stateless top-k semantic retriever."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: Embedder,
        top_k: Optional[int] = None,
    ):
        """Initialize the retriever.

        Args:
            vector_store: Store holding the ingested records
            embedder: Embedding capability used for queries
            top_k: Default number of results to retrieve (default from config)
        """
        self.vector_store = vector_store
        self.embedder = embedder
        self.top_k = validate_top_k(config.RETRIEVAL_TOP_K if top_k is None else top_k)

        logger.info("retriever_initialized", top_k=self.top_k)

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
    ) -> List[RetrievalResult]:
        """Retrieve the chunks most similar to a query.

        Args:
            query: User query text
            top_k: Number of results to return (overrides default)

        Returns:
            ``min(top_k, record count)`` results, most similar first; ties
            keep insertion order

        Raises:
            InvalidArgumentError: If the query is blank or top_k is not positive
            EmbeddingProviderError: If the query cannot be embedded
            DimensionMismatchError: If the query vector doesn't fit the store
        """
        top_k = validate_top_k(self.top_k if top_k is None else top_k)

        if not query or not query.strip():
            raise InvalidArgumentError("Query must not be empty")

        logger.info("retrieval_started", query_length=len(query), top_k=top_k)

        if self.vector_store.count() == 0:
            logger.warning("empty_store_no_results")
            return []

        query_embedding = await self.embedder.embed(query)

        logger.debug("query_embedded", dimension=len(query_embedding))

        results = self.vector_store.search(query_embedding, top_k=top_k)

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(results),
            top_similarity=results[0].similarity if results else None,
        )

        return results
