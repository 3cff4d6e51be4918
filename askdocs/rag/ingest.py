"""Ingest pipeline for indexing documents.

Orchestrates:
- Source metadata tagging
- Text chunking
- Embedding generation and vector storage
"""
from typing import Any, Dict, Optional
import structlog

from askdocs.errors import EmptyContentError, InvalidArgumentError
from askdocs.rag.chunker import TextChunker
from askdocs.rag.store import VectorStore

logger = structlog.get_logger()

SOURCE_TYPES = ("text", "url", "pdf")


def source_metadata(source_type: str, source_url: Optional[str] = None) -> Dict[str, str]:
    """Build the metadata tag for a document's origin.

    Raises:
        InvalidArgumentError: If the source type is unknown or a URL is missing
    """
    if source_type == "url":
        if not source_url:
            raise InvalidArgumentError('URL is required for type "url"')
        return {"source": source_url}
    if source_type == "pdf":
        return {"source": "pdf-upload"}
    if source_type == "text":
        return {"source": "text-input"}
    raise InvalidArgumentError(
        f"Unknown source type {source_type!r}, expected one of {SOURCE_TYPES}"
    )


class IngestPipeline:
    """Pipeline for ingesting normalized document text into the store."""

    def __init__(
        self,
        vector_store: VectorStore,
        chunker: Optional[TextChunker] = None,
        persist: bool = False,
    ):
        """Initialize the ingest pipeline.

        Args:
            vector_store: Store receiving the embedded chunks
            chunker: Text chunker (default sizes from config)
            persist: Save the store to disk after each successful ingestion
        """
        self.vector_store = vector_store
        self.chunker = chunker or TextChunker()
        self.persist = persist

        logger.info(
            "ingest_pipeline_initialized",
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
            persist=persist,
        )

    async def ingest(
        self,
        content: str,
        source_type: str = "text",
        source_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Chunk, embed and store one document.

        Args:
            content: Plain document text
            source_type: One of "text", "url", "pdf"
            source_url: Page URL, required when source_type is "url"

        Returns:
            Dictionary with ingestion results (chunks_created, persisted, etc.)

        Raises:
            InvalidArgumentError: On an unknown source type or missing URL
            EmptyContentError: If the content has no usable text
            EmbeddingProviderError: If embedding fails (nothing is stored)
            DimensionMismatchError: If embeddings don't fit the store
        """
        metadata = source_metadata(source_type, source_url)

        chunks = self.chunker.split(content or "", metadata)
        if not chunks:
            logger.warning("no_chunks_created", source=metadata["source"])
            raise EmptyContentError("Document contains no usable text")

        records = await self.vector_store.add_records(chunks)

        # Records stay in memory even if the write fails; the next save retries it
        persisted = False
        if self.persist:
            try:
                await self.vector_store.save()
                persisted = True
            except OSError as e:
                logger.error(
                    "store_save_failed",
                    path=str(self.vector_store.path),
                    error=str(e),
                    error_type=type(e).__name__,
                )

        stats = self.chunker.get_chunk_stats(chunks)

        logger.info(
            "document_ingested",
            source=metadata["source"],
            chunks_created=len(records),
            total_records=self.vector_store.count(),
            persisted=persisted,
        )

        return {
            "source": metadata["source"],
            "chunks_created": len(records),
            "total_records": self.vector_store.count(),
            "avg_chunk_size": stats["avg_chunk_size"],
            "persisted": persisted,
        }
