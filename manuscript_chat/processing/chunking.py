"""
Fixed-Window Chunker  —  Overlapping Character Segments
════════════════════════════════════════════════════════

Why fixed windows here?
───────────────────────
  Retrieval in this service is purely lexical: a chunk scores by literal
  substring containment of the query words. Semantic boundaries buy very
  little for that scorer, and fixed window sizes keep the prompt size
  predictable (top_k × chunk_size characters of context per turn).

How it works
────────────
  1. Slide a window of ``chunk_size`` characters over the full text,
     starting at offset 0 and stepping ``chunk_size - overlap`` each time.
  2. Stop once the window reaches the end of the text (the final window
     may be shorter than ``chunk_size``).
  3. Drop any window whose stripped length is below ``min_chunk_chars``;
     this suppresses near-empty trailing fragments and whitespace runs.

Guarantees
──────────
  - Chunks come out in strictly ascending start-offset order.
  - Consecutive windows overlap by exactly ``overlap`` characters.
  - Chunk text is the raw window, never stripped or rewritten, so quotes
    the model lifts from it match the manuscript verbatim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from manuscript_chat.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentChunk:
    """
    One contiguous slice of the manuscript.

    index : 0-based position in the emitted sequence
    start : character offset of the slice in the full text
    text  : the slice itself, verbatim
    """
    index: int
    start: int
    text:  str

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    def __repr__(self) -> str:  # pragma: no cover
        preview = self.text[:50].replace("\n", " ")
        return f"DocumentChunk(index={self.index}, start={self.start}, text={preview!r}...)"


# ---------------------------------------------------------------------------
# Chunker
# ---------------------------------------------------------------------------

class FixedWindowChunker:
    """
    Stateless sliding-window chunker.

    Usage::

        chunker = FixedWindowChunker(chunk_size=1800, overlap=250)
        chunks  = chunker.chunk(full_text)

    Raises:
        ValueError: on a non-positive chunk size, a negative overlap, or an
                    overlap that would stop the window from advancing.
    """

    def __init__(
        self,
        chunk_size:      int = 1800,
        overlap:         int = 250,
        min_chunk_chars: int = 200,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0:
            raise ValueError("overlap must be >= 0")
        if overlap >= chunk_size:
            raise ValueError("overlap must be less than chunk_size")
        self.chunk_size      = chunk_size
        self.overlap         = overlap
        self.min_chunk_chars = min_chunk_chars

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "FixedWindowChunker":
        cfg = cfg or default_settings
        return cls(
            chunk_size=cfg.chunk_size,
            overlap=cfg.chunk_overlap,
            min_chunk_chars=cfg.min_chunk_chars,
        )

    @property
    def step(self) -> int:
        return self.chunk_size - self.overlap

    def chunk(self, text: str) -> list[DocumentChunk]:
        """
        Split ``text`` into overlapping windows.

        Returns:
            Ordered list of DocumentChunk (index 0, 1, 2, …). Empty text
            yields an empty list.
        """
        chunks: list[DocumentChunk] = []
        start = 0

        while start < len(text):
            end = min(start + self.chunk_size, len(text))
            window = text[start:end]
            if len(window.strip()) >= self.min_chunk_chars:
                chunks.append(DocumentChunk(index=len(chunks), start=start, text=window))
            if end == len(text):
                break
            start += self.step

        if text:
            logger.info(
                "FixedWindowChunker | chars=%d chunks=%d chunk_size=%d overlap=%d",
                len(text), len(chunks), self.chunk_size, self.overlap,
            )
        return chunks
