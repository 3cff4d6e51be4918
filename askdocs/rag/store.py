"""In-memory vector store with exhaustive cosine search.

Handles:
- Append-only record ingestion with dimension checks
- Brute-force cosine similarity search (numpy)
- Point-in-time snapshots for concurrent readers
- JSON persistence of records and metadata
"""
import json
import os
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from askdocs import config
from askdocs.errors import (
    DimensionMismatchError,
    EmbeddingProviderError,
    InvalidArgumentError,
)
from askdocs.rag.chunker import TextChunk
from askdocs.rag.embeddings import Embedder

logger = structlog.get_logger()


@dataclass(frozen=True)
class Record:
    """A persisted chunk with its embedding."""

    id: str
    content: str
    embedding: Tuple[float, ...]
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class RetrievalResult:
    """A single retrieved chunk with its similarity to the query."""

    id: str
    content: str
    metadata: Dict[str, str]
    similarity: float

    @property
    def source(self) -> str:
        """Get the source tag recorded at ingestion."""
        return self.metadata.get("source", "")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, 0.0 if either has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(expected=len(a), actual=len(b))
    scores = cosine_scores(np.asarray([b], dtype=np.float64), a)
    return float(scores[0])


def cosine_scores(matrix: np.ndarray, query: Sequence[float]) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Rows (or a query) with zero magnitude score 0.0. Results are clipped to
    [-1, 1] to absorb floating point rounding.
    """
    query_vector = np.asarray(query, dtype=np.float64)
    if matrix.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)

    dots = matrix @ query_vector
    denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vector)

    scores = np.zeros(matrix.shape[0], dtype=np.float64)
    np.divide(dots, denominators, out=scores, where=denominators > 0)
    return np.clip(scores, -1.0, 1.0)


class VectorStore:
    """Append-only vector store with exact cosine search."""

    def __init__(
        self,
        embedder: Embedder,
        dimension: Optional[int] = None,
        path: Optional[Path] = None,
        embedding_model: str = None,
    ):
        """Initialize the vector store.

        Args:
            embedder: Embedding capability used to embed ingested chunks
            dimension: Fixed embedding dimension (established by first write if None)
            path: JSON file used by save()/load() (default from config)
            embedding_model: Model name recorded in persisted metadata
        """
        self.embedder = embedder
        self.path = Path(path) if path is not None else config.VECTOR_STORE_PATH
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL

        self._configured_dimension = dimension
        self._dimension: Optional[int] = dimension
        self._records: List[Record] = []
        self._matrix = np.zeros((0, dimension or 0), dtype=np.float64)

        # Guards the in-memory append and snapshot only, never provider calls
        self._lock = threading.Lock()

        logger.info(
            "vector_store_initialized",
            dimension=dimension,
            path=str(self.path),
        )

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def count(self) -> int:
        return len(self._records)

    def _snapshot(self) -> Tuple[List[Record], np.ndarray]:
        # Lists and matrices are replaced on append, never mutated in place
        with self._lock:
            return self._records, self._matrix

    def all_records(self) -> List[Record]:
        """Return every persisted record in insertion order."""
        records, _ = self._snapshot()
        return list(records)

    async def add_records(self, chunks: Sequence[TextChunk]) -> List[Record]:
        """Embed chunks and append one record per chunk.

        Either every chunk in the call is stored or none is.

        Args:
            chunks: Chunks to store, in order

        Returns:
            The new records, in the same order as ``chunks``

        Raises:
            EmbeddingProviderError: If embedding fails
            DimensionMismatchError: If any embedding has the wrong length
        """
        if not chunks:
            return []

        # Provider call happens outside the lock
        embeddings = await self.embedder.embed_batch([c.content for c in chunks])

        if len(embeddings) != len(chunks):
            logger.error(
                "embedding_count_mismatch",
                expected=len(chunks),
                received=len(embeddings),
            )
            raise EmbeddingProviderError(
                f"Embedding provider returned {len(embeddings)} vectors "
                f"for {len(chunks)} texts"
            )

        with self._lock:
            expected = self._dimension or len(embeddings[0])
            for embedding in embeddings:
                if len(embedding) != expected:
                    logger.error(
                        "embedding_dimension_mismatch",
                        expected=expected,
                        actual=len(embedding),
                        store_size=len(self._records),
                    )
                    raise DimensionMismatchError(
                        expected=expected, actual=len(embedding)
                    )

            new_records = [
                Record(
                    id=uuid.uuid4().hex,
                    content=chunk.content,
                    embedding=tuple(float(x) for x in embedding),
                    metadata=dict(chunk.metadata),
                )
                for chunk, embedding in zip(chunks, embeddings)
            ]
            new_rows = np.asarray(
                [r.embedding for r in new_records], dtype=np.float64
            )

            self._dimension = expected
            if self._matrix.shape[0] == 0:
                self._matrix = new_rows
            else:
                self._matrix = np.vstack([self._matrix, new_rows])
            self._records = self._records + new_records
            total = len(self._records)

        logger.info(
            "records_added",
            count=len(new_records),
            total_records=total,
            dimension=expected,
        )

        return new_records

    def search(self, query_embedding: Sequence[float], top_k: int) -> List[RetrievalResult]:
        """Score every record against a query vector and return the best.

        Results are sorted by descending similarity; ties keep insertion
        order.

        Args:
            query_embedding: Query vector
            top_k: Maximum number of results

        Returns:
            Up to ``top_k`` RetrievalResult objects

        Raises:
            InvalidArgumentError: If top_k is not positive
            DimensionMismatchError: If the query length differs from the store's
        """
        if top_k <= 0:
            raise InvalidArgumentError(f"top_k must be positive, got {top_k}")

        records, matrix = self._snapshot()
        if not records:
            return []

        if len(query_embedding) != matrix.shape[1]:
            raise DimensionMismatchError(
                expected=matrix.shape[1], actual=len(query_embedding)
            )

        scores = cosine_scores(matrix, query_embedding)
        order = np.argsort(-scores, kind="stable")[:top_k]

        results = [
            RetrievalResult(
                id=records[i].id,
                content=records[i].content,
                metadata=dict(records[i].metadata),
                similarity=float(scores[i]),
            )
            for i in order
        ]

        logger.info(
            "vector_search_completed",
            top_k=top_k,
            scanned=len(records),
            results_found=len(results),
        )

        return results

    async def save(self) -> None:
        """Save records and metadata to the JSON file.

        The file is written next to its destination and then swapped in.
        """
        records, _ = self._snapshot()
        self.path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "embedding_model": self.embedding_model,
            "embedding_dimension": self._dimension,
            "vector_count": len(records),
            "records": [
                {
                    "id": r.id,
                    "content": r.content,
                    "embedding": list(r.embedding),
                    "metadata": r.metadata,
                }
                for r in records
            ],
        }

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        os.replace(tmp_path, self.path)

        logger.info(
            "vector_store_saved",
            path=str(self.path),
            vector_count=len(records),
        )

    async def load(self) -> None:
        """Load records from the JSON file, replacing in-memory state.

        Raises:
            FileNotFoundError: If the file doesn't exist
            DimensionMismatchError: If stored vectors disagree with each other
                or with the configured dimension
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Vector store not found: {self.path}")

        with open(self.path, "r", encoding="utf-8") as f:
            payload = json.load(f)

        stored_dim = payload.get("embedding_dimension")
        if (
            self._configured_dimension is not None
            and stored_dim is not None
            and stored_dim != self._configured_dimension
        ):
            raise DimensionMismatchError(
                expected=self._configured_dimension,
                actual=stored_dim,
                message=(
                    f"Dimension mismatch: store was built with "
                    f"{payload.get('embedding_model')} (dim={stored_dim}), but "
                    f"dim={self._configured_dimension} is configured. "
                    f"Please rebuild the store."
                ),
            )

        records = [
            Record(
                id=item["id"],
                content=item["content"],
                embedding=tuple(float(x) for x in item["embedding"]),
                metadata=dict(item.get("metadata") or {}),
            )
            for item in payload.get("records", [])
        ]

        dimension = stored_dim or self._configured_dimension
        for record in records:
            if dimension is None:
                dimension = len(record.embedding)
            if len(record.embedding) != dimension:
                raise DimensionMismatchError(
                    expected=dimension, actual=len(record.embedding)
                )

        matrix = np.asarray([r.embedding for r in records], dtype=np.float64)
        if not records:
            matrix = np.zeros((0, dimension or 0), dtype=np.float64)

        with self._lock:
            self._records = records
            self._matrix = matrix
            self._dimension = dimension

        logger.info(
            "vector_store_loaded",
            path=str(self.path),
            vector_count=len(records),
            dimension=dimension,
        )

    async def load_or_init(self) -> None:
        """Load the store from disk if a file exists, otherwise start empty."""
        if self.path.exists():
            logger.info("existing_store_detected", path=str(self.path))
            await self.load()
        else:
            logger.info("no_store_found_starting_empty", path=str(self.path))

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the vector store.

        Returns:
            Dictionary with store statistics
        """
        records, _ = self._snapshot()
        return {
            "vector_count": len(records),
            "dimension": self._dimension,
            "embedding_model": self.embedding_model,
            "path": str(self.path),
            "exists_on_disk": self.path.exists(),
        }
