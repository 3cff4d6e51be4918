"""Shared fixtures and stub providers for the test suite."""
import asyncio
import string
from typing import Callable, List, Optional, Sequence

import pytest

from askdocs.errors import CompletionProviderError, EmbeddingProviderError
from askdocs.rag.chunker import TextChunk, TextChunker
from askdocs.rag.store import VectorStore

ALPHABET = string.ascii_uppercase


def one_hot_first_char(text: str) -> List[float]:
    """One-hot vector keyed by the first non-blank letter of the text."""
    vector = [0.0] * len(ALPHABET)
    stripped = text.strip().upper()
    if stripped and stripped[0] in ALPHABET:
        vector[ALPHABET.index(stripped[0])] = 1.0
    return vector


class StubEmbedder:
    """Embedder computing vectors with a plain function."""

    def __init__(self, fn: Callable[[str], List[float]] = one_hot_first_char, delay: float = 0.0):
        self.fn = fn
        self.delay = delay
        self.embed_calls: List[str] = []
        self.batch_calls: List[List[str]] = []

    async def embed(self, text: str) -> List[float]:
        self.embed_calls.append(text)
        return self.fn(text)

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        if self.delay:
            await asyncio.sleep(self.delay)
        return [self.fn(t) for t in texts]


class FailingEmbedder(StubEmbedder):
    """Embedder whose provider is down."""

    async def embed(self, text: str) -> List[float]:
        raise EmbeddingProviderError("provider unavailable")

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        raise EmbeddingProviderError("provider unavailable")


class StubCompleter:
    """Completer that records prompts and returns a canned answer."""

    def __init__(self, answer: str = "stub answer", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


def make_chunks(texts: Sequence[str], source: str = "text-input") -> List[TextChunk]:
    return [
        TextChunk(
            content=text,
            char_start=0,
            char_end=len(text),
            chunk_index=i,
            metadata={"source": source},
        )
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def embedder() -> StubEmbedder:
    return StubEmbedder()


@pytest.fixture
def completer() -> StubCompleter:
    return StubCompleter()


@pytest.fixture
def store(embedder, tmp_path) -> VectorStore:
    return VectorStore(embedder=embedder, path=tmp_path / "vector_store.json")


@pytest.fixture
def chunker() -> TextChunker:
    return TextChunker(chunk_size=4, chunk_overlap=1)


@pytest.fixture
def failing_completer() -> StubCompleter:
    return StubCompleter(error=CompletionProviderError("model offline"))
