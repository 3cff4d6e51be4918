"""Tests for the overlapping text chunker."""
import random

import pytest

from askdocs.errors import InvalidArgumentError
from askdocs.rag.chunker import TextChunker

WORDS = ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta"]
ENDINGS = [" ", " ", " ", ". ", "! ", "? ", "\n", "\n\n", ""]


def generated_text(seed: int, length: int = 3000) -> str:
    rng = random.Random(seed)
    parts = []
    while sum(len(p) for p in parts) < length:
        parts.append(rng.choice(WORDS))
        parts.append(rng.choice(ENDINGS))
    return "".join(parts)


def reconstruct(chunks, text):
    """Rebuild text from chunk positions, filling skipped whitespace from the source."""
    if not chunks:
        return ""
    parts = [chunks[0].content]
    for prev, chunk in zip(chunks, chunks[1:]):
        if chunk.char_start >= prev.char_end:
            parts.append(text[prev.char_end:chunk.char_start] + chunk.content)
        else:
            parts.append(chunk.content[prev.char_end - chunk.char_start:])
    return "".join(parts)


class TestParameters:
    def test_overlap_must_be_smaller_than_size(self):
        with pytest.raises(InvalidArgumentError):
            TextChunker(chunk_size=10, chunk_overlap=10)

    @pytest.mark.parametrize("size,overlap", [(0, 1), (10, 0), (-5, 1), (10, -1)])
    def test_sizes_must_be_positive(self, size, overlap):
        with pytest.raises(InvalidArgumentError):
            TextChunker(chunk_size=size, chunk_overlap=overlap)

    def test_defaults_from_config(self):
        chunker = TextChunker()
        assert chunker.chunk_size == 800
        assert chunker.chunk_overlap == 100


class TestSplit:
    def test_empty_text_yields_no_chunks(self):
        chunker = TextChunker(chunk_size=10, chunk_overlap=2)
        assert chunker.split("") == []
        assert chunker.split("   \n\t ") == []

    def test_short_text_is_single_trimmed_chunk(self):
        chunker = TextChunker(chunk_size=50, chunk_overlap=5)
        chunks = chunker.split("   Hello world.  \n", {"source": "text-input"})
        assert len(chunks) == 1
        assert chunks[0].content == "Hello world."
        assert chunks[0].metadata == {"source": "text-input"}

    def test_text_exactly_chunk_size(self):
        chunker = TextChunker(chunk_size=5, chunk_overlap=1)
        chunks = chunker.split("abcde")
        assert [c.content for c in chunks] == ["abcde"]

    def test_small_sentences(self, chunker):
        chunks = chunker.split("A. B. C.")
        assert [c.content for c in chunks] == ["A. ", " B. ", " C."]

    def test_prefers_paragraph_break(self):
        text = "Alpha beta.\n\nGamma delta. Epsilon zeta eta theta."
        chunker = TextChunker(chunk_size=30, chunk_overlap=5)
        chunks = chunker.split(text)
        assert chunks[0].content == "Alpha beta.\n\n"

    def test_prefers_sentence_over_word(self):
        text = "One two three. Four five six seven"
        chunker = TextChunker(chunk_size=20, chunk_overlap=3)
        chunks = chunker.split(text)
        assert chunks[0].content == "One two three. "

    def test_hard_cut_without_boundaries(self):
        chunker = TextChunker(chunk_size=10, chunk_overlap=2)
        chunks = chunker.split("x" * 25)
        assert [(c.char_start, c.char_end) for c in chunks] == [(0, 10), (8, 18), (16, 25)]
        assert [len(c.content) for c in chunks] == [10, 10, 9]

    def test_metadata_copied_to_every_chunk(self):
        chunker = TextChunker(chunk_size=20, chunk_overlap=4)
        metadata = {"source": "https://example.com"}
        chunks = chunker.split(generated_text(1, 200), metadata)
        assert len(chunks) > 1
        assert all(c.metadata == metadata for c in chunks)
        assert all(c.source == "https://example.com" for c in chunks)

    def test_chunk_indexes_follow_document_order(self):
        chunker = TextChunker(chunk_size=40, chunk_overlap=8)
        chunks = chunker.split(generated_text(2, 500))
        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        assert all(a.char_start < b.char_start for a, b in zip(chunks, chunks[1:]))

    def test_whitespace_run_is_skipped(self):
        chunker = TextChunker(chunk_size=5, chunk_overlap=1)
        chunks = chunker.split("a" + " " * 20 + "b")
        assert [c.content for c in chunks] == ["a    ", "b"]
        assert [(c.char_start, c.char_end) for c in chunks] == [(0, 5), (21, 22)]

    def test_blank_lines_do_not_become_chunks(self):
        chunker = TextChunker(chunk_size=4, chunk_overlap=1)
        chunks = chunker.split("ab\n\n\n\n\n\n\n\ncd")
        assert all(c.content.strip() for c in chunks)
        assert chunks[-1].content == "cd"

    def test_final_chunk_not_repeated(self):
        chunker = TextChunker(chunk_size=10, chunk_overlap=3)
        chunks = chunker.split("abcdefghij klmno")
        assert chunks[-1].char_end == len("abcdefghij klmno")
        assert sum(1 for c in chunks if c.char_end == chunks[-1].char_end) == 1


class TestProperties:
    @pytest.mark.parametrize("seed", range(6))
    @pytest.mark.parametrize("size,overlap", [(4, 1), (20, 5), (80, 10), (800, 100)])
    def test_chunks_cover_text_exactly(self, seed, size, overlap):
        text = generated_text(seed)
        trimmed = text.strip()
        chunker = TextChunker(chunk_size=size, chunk_overlap=overlap)
        chunks = chunker.split(text)

        assert reconstruct(chunks, trimmed) == trimmed
        for chunk in chunks:
            assert chunk.content.strip()
            assert len(chunk.content) <= size
            assert chunk.content == trimmed[chunk.char_start:chunk.char_end]

    @pytest.mark.parametrize("seed", range(6))
    @pytest.mark.parametrize("size,overlap", [(4, 1), (20, 5), (120, 30)])
    def test_overlap_is_bounded(self, seed, size, overlap):
        chunker = TextChunker(chunk_size=size, chunk_overlap=overlap)
        chunks = chunker.split(generated_text(seed))

        trimmed = generated_text(seed).strip()
        for prev, nxt in zip(chunks, chunks[1:]):
            shared = prev.char_end - nxt.char_start
            if shared <= 0:
                assert trimmed[prev.char_end:nxt.char_start].isspace()
                continue
            assert shared == overlap
            assert prev.content[-shared:] == nxt.content[:shared]

    def test_chunk_stats(self):
        chunker = TextChunker(chunk_size=10, chunk_overlap=2)
        chunks = chunker.split("x" * 25)
        stats = chunker.get_chunk_stats(chunks)
        assert stats["chunk_count"] == 3
        assert stats["max_chunk_size"] == 10
        assert stats["min_chunk_size"] == 9
        assert chunker.get_chunk_stats([])["chunk_count"] == 0
