"""Unit tests for the WordChunker -- fixed-size word windows."""

from __future__ import annotations

import math

import pytest

from docqa.services.ingestion.chunker import DEFAULT_CHUNK_SIZE, WordChunker


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


class TestBasicChunking:
    def test_small_example(self) -> None:
        assert WordChunker(chunk_size=2).chunk("a b c d e") == ["a b", "c d", "e"]

    def test_default_size_is_300(self) -> None:
        assert WordChunker().chunk_size == DEFAULT_CHUNK_SIZE == 300

    def test_exactly_one_window(self) -> None:
        chunks = WordChunker().chunk(_words(300))
        assert len(chunks) == 1
        assert len(chunks[0].split()) == 300

    def test_one_word_over_spills_into_second_chunk(self) -> None:
        chunks = WordChunker().chunk(_words(301))
        assert [len(c.split()) for c in chunks] == [300, 1]


class TestWordPreservation:
    @pytest.mark.parametrize("n_words,size", [(1, 3), (7, 3), (9, 3), (1000, 300), (599, 300)])
    def test_chunk_count_and_sequence(self, n_words: int, size: int) -> None:
        text = _words(n_words)
        chunks = WordChunker(chunk_size=size).chunk(text)

        assert len(chunks) == math.ceil(n_words / size)
        rejoined = " ".join(chunks).split()
        assert rejoined == text.split()

    def test_every_chunk_but_last_is_full(self) -> None:
        chunks = WordChunker(chunk_size=4).chunk(_words(10))
        assert all(len(c.split()) == 4 for c in chunks[:-1])
        assert len(chunks[-1].split()) == 2

    def test_irregular_whitespace_is_normalised(self) -> None:
        text = "alpha\n\nbeta\t gamma   delta\r\nepsilon"
        chunks = WordChunker(chunk_size=2).chunk(text)
        assert chunks == ["alpha beta", "gamma delta", "epsilon"]


class TestEdgeCases:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_empty_or_whitespace_yields_no_chunks(self, text: str) -> None:
        assert WordChunker().chunk(text) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_size_rejected(self, size: int) -> None:
        with pytest.raises(ValueError):
            WordChunker(chunk_size=size)
