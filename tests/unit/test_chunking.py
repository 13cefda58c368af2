"""
Unit Tests — FixedWindowChunker
"""

from __future__ import annotations

import pytest

from manuscript_chat.processing.chunking import DocumentChunk, FixedWindowChunker

pytestmark = pytest.mark.unit


def _alphabet_text(length: int) -> str:
    return "".join(chr(97 + i % 26) for i in range(length))


class TestFixedWindowChunker:

    def test_empty_text_yields_no_chunks(self):
        assert FixedWindowChunker().chunk("") == []

    def test_short_text_is_a_single_raw_window(self):
        text = "  " + "x" * 300
        chunks = FixedWindowChunker().chunk(text)

        assert len(chunks) == 1
        assert chunks[0].start == 0
        assert chunks[0].text == text          # not stripped

    def test_default_windows_step_and_overlap(self):
        text = _alphabet_text(5000)
        chunks = FixedWindowChunker().chunk(text)

        assert [c.start for c in chunks] == [0, 1550, 3100, 4650]
        assert [c.index for c in chunks] == [0, 1, 2, 3]
        assert chunks[-1].end == 5000
        for prev, nxt in zip(chunks, chunks[1:]):
            assert prev.text[-250:] == nxt.text[:250]
            assert text[prev.start:prev.end] == prev.text

    def test_text_shorter_than_minimum_is_dropped(self):
        assert FixedWindowChunker().chunk("word " * 30) == []

    def test_short_trailing_fragment_is_dropped(self):
        chunker = FixedWindowChunker(chunk_size=100, overlap=20, min_chunk_chars=30)
        chunks = chunker.chunk(_alphabet_text(185))

        # windows start at 0, 80, 160; the last one is only 25 chars
        assert [c.start for c in chunks] == [0, 80]

    def test_whitespace_windows_dropped_and_indices_contiguous(self):
        chunker = FixedWindowChunker(chunk_size=100, overlap=0, min_chunk_chars=10)
        text = "a" * 100 + " " * 100 + "b" * 100
        chunks = chunker.chunk(text)

        assert chunks == [
            DocumentChunk(index=0, start=0, text="a" * 100),
            DocumentChunk(index=1, start=200, text="b" * 100),
        ]

    def test_stops_once_window_reaches_end(self):
        chunker = FixedWindowChunker(chunk_size=100, overlap=50, min_chunk_chars=1)
        chunks = chunker.chunk("z" * 100)
        assert len(chunks) == 1

    @pytest.mark.parametrize("size, overlap", [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)])
    def test_invalid_parameters_rejected(self, size, overlap):
        with pytest.raises(ValueError):
            FixedWindowChunker(chunk_size=size, overlap=overlap)

    def test_from_settings(self, test_settings):
        chunker = FixedWindowChunker.from_settings(test_settings)
        assert chunker.chunk_size == 1800
        assert chunker.overlap == 250
        assert chunker.min_chunk_chars == 200
        assert chunker.step == 1550
