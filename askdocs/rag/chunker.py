"""Text chunking with overlap for RAG pipeline.

Implements character-based chunking to avoid tokenizer dependencies.
Cuts prefer natural boundaries: paragraph, then line, then sentence,
then word, falling back to a hard cut at the size limit.
"""
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import structlog

from askdocs import config
from askdocs.errors import InvalidArgumentError

logger = structlog.get_logger()

# Boundary levels in order of preference; separators stay with the left chunk
BOUNDARY_LEVELS: Tuple[Tuple[str, ...], ...] = (
    ("\n\n",),
    ("\n",),
    (". ", "! ", "? "),
    (" ",),
)


@dataclass(frozen=True)
class TextChunk:
    """A contiguous slice of a source document."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def source(self) -> str:
        return self.metadata.get("source", "")


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)

        Raises:
            InvalidArgumentError: If sizes are not positive or overlap >= size
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = (
            config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        )

        # Validate parameters
        if self.chunk_size <= 0 or self.chunk_overlap <= 0:
            raise InvalidArgumentError(
                f"Chunk size ({self.chunk_size}) and overlap ({self.chunk_overlap}) "
                f"must be positive"
            )
        if self.chunk_overlap >= self.chunk_size:
            raise InvalidArgumentError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

        logger.info(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def split(
        self, text: str, metadata: Optional[Dict[str, str]] = None
    ) -> List[TextChunk]:
        """Split text into overlapping chunks.

        Positions are relative to the trimmed text. Each chunk's content is
        exactly ``trimmed[char_start:char_end]``. Consecutive chunks share
        ``chunk_overlap`` characters, except where the next window would hold
        only whitespace: that run is skipped and the next chunk starts at
        the following non-whitespace character.

        Args:
            text: Document text to chunk
            metadata: Source metadata copied onto every chunk

        Returns:
            List of TextChunk objects in document order
        """
        metadata = dict(metadata or {})
        text = (text or "").strip()
        if not text:
            return []

        text_length = len(text)

        # Handle text shorter than chunk size
        if text_length <= self.chunk_size:
            logger.debug(
                "text_shorter_than_chunk_size",
                text_length=text_length,
                chunk_size=self.chunk_size,
            )
            return [
                TextChunk(
                    content=text,
                    char_start=0,
                    char_end=text_length,
                    chunk_index=0,
                    metadata=metadata,
                )
            ]

        chunks = []
        start = 0

        while True:
            end = start + self.chunk_size

            if end >= text_length:
                chunks.append(
                    TextChunk(
                        content=text[start:],
                        char_start=start,
                        char_end=text_length,
                        chunk_index=len(chunks),
                        metadata=dict(metadata),
                    )
                )
                break

            cut = self._find_cut(text, start, end)
            if text[start:cut].isspace():
                # Whitespace runs never form a chunk of their own
                while text[start].isspace():
                    start += 1
                continue

            chunks.append(
                TextChunk(
                    content=text[start:cut],
                    char_start=start,
                    char_end=cut,
                    chunk_index=len(chunks),
                    metadata=dict(metadata),
                )
            )

            # _find_cut guarantees cut > start + overlap, so this always advances
            start = cut - self.chunk_overlap

        logger.info(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
            avg_chunk_size=sum(len(c.content) for c in chunks) // len(chunks),
        )

        return chunks

    def _find_cut(self, text: str, start: int, end: int) -> int:
        """Find the cut position for the window ``text[start:end]``.

        Returns the end of the last separator of the most preferred level
        that lies past the overlap region, or ``end`` for a hard cut.
        """
        min_cut = start + self.chunk_overlap

        for separators in BOUNDARY_LEVELS:
            best = -1
            for separator in separators:
                idx = text.rfind(separator, start, end)
                if idx == -1:
                    continue
                cut = idx + len(separator)
                if cut > min_cut and cut > best:
                    best = cut
            if best != -1:
                return best

        return end

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of TextChunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
            }

        chunk_sizes = [len(c.content) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }
