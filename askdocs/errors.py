"""Error kinds raised by the document QA pipeline."""
from typing import Optional


class AskDocsError(Exception):
    """Base class for all pipeline errors."""


class EmbeddingProviderError(AskDocsError):
    """The embedding provider failed, timed out or returned no vector."""


class CompletionProviderError(AskDocsError):
    """The completion provider failed to produce an answer."""


class DimensionMismatchError(AskDocsError, ValueError):
    """An embedding's length disagrees with the store's dimensionality."""

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message
            or f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )


class InvalidArgumentError(AskDocsError, ValueError):
    """A caller supplied an argument outside the accepted range."""


class EmptyContentError(AskDocsError):
    """Ingestion was called with no usable text."""


class DocumentLoadError(AskDocsError):
    """A URL or PDF could not be turned into plain text."""
