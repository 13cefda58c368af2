"""
Keyword Retriever — literal-substring scoring over manuscript chunks.

Scoring:

  - Query words are the lowercase whitespace-separated tokens longer than
    three characters (short function words carry no signal).
  - Each query word found ANYWHERE in the lowercased chunk, including
    inside a longer word, adds WORD_WEIGHT. This is containment, not
    token matching: "structur" matches "restructuring".
  - Questions about who wrote the manuscript or what it is called rarely
    share vocabulary with the body text, but the answer almost always sits
    on the opening pages. When the query contains a trigger word for the
    active language, the leading chunks get a flat AUTHOR_BONUS.

Fallback:
  If fewer than MIN_RESULTS chunks reach MIN_SCORE_THRESHOLD, the top
  MIN_RESULTS chunks are taken regardless of score, so a chat turn over a
  non-empty manuscript is never starved of context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final, Mapping, Sequence

from manuscript_chat.processing.chunking import DocumentChunk

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scoring constants
# ---------------------------------------------------------------------------

WORD_WEIGHT:            Final[int] = 2
AUTHOR_BONUS:           Final[int] = 5
AUTHOR_BONUS_POSITIONS: Final[int] = 2    # chunks 0..N-1 receive the bonus
MIN_SCORE_THRESHOLD:    Final[int] = 4
MIN_RESULTS:            Final[int] = 3
MIN_QUERY_WORD_LEN:     Final[int] = 4    # words must be longer than 3 chars


# ---------------------------------------------------------------------------
# Author/title trigger words, keyed by language code
# ---------------------------------------------------------------------------

AUTHOR_TRIGGER_WORDS: Final[dict[str, frozenset[str]]] = {
    "en": frozenset({"author", "writer", "wrote", "written", "title"}),
    "ar": frozenset({"كاتب", "مؤلف", "الكاتب", "المؤلف", "عنوان", "العنوان"}),
    "fr": frozenset({"auteur", "écrivain", "titre"}),
    "es": frozenset({"autor", "escritor", "título"}),
    "de": frozenset({"autor", "verfasser", "schriftsteller", "titel"}),
}


def trigger_words_for(
    language: str | None,
    table: Mapping[str, frozenset[str]] = AUTHOR_TRIGGER_WORDS,
) -> frozenset[str]:
    """
    Trigger words for ``language`` plus English (users often mix languages).
    An unknown or missing language falls back to every configured word.
    """
    if language:
        key = language.lower().split("-")[0]
        if key in table:
            return table[key] | table.get("en", frozenset())
    words: frozenset[str] = frozenset()
    for group in table.values():
        words |= group
    return words


def query_words(query: str) -> list[str]:
    """Lowercase whitespace tokens longer than three characters."""
    return [w for w in query.lower().split() if len(w) >= MIN_QUERY_WORD_LEN]


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class ScoredChunk:
    chunk: DocumentChunk
    score: int


# ---------------------------------------------------------------------------
# KeywordRetriever
# ---------------------------------------------------------------------------

class KeywordRetriever:
    """
    Stateless lexical retriever.

    Example::

        retriever = KeywordRetriever()
        hits = retriever.retrieve("who is the author?", state.chunks, top_k=4, language="en")
        context = "\\n\\n---\\n\\n".join(c.text for c in hits)
    """

    def __init__(self, trigger_words: Mapping[str, frozenset[str]] | None = None) -> None:
        self._trigger_words = trigger_words or AUTHOR_TRIGGER_WORDS

    def score(
        self,
        query:    str,
        chunks:   Sequence[DocumentChunk],
        language: str | None = None,
    ) -> list[ScoredChunk]:
        """Score every chunk; returned in input order."""
        words      = query_words(query)
        q_lower    = query.lower()
        triggers   = trigger_words_for(language, self._trigger_words)
        wants_meta = any(t in q_lower for t in triggers)

        scored: list[ScoredChunk] = []
        for position, chunk in enumerate(chunks):
            chunk_lower = chunk.text.lower()
            score = sum(WORD_WEIGHT for w in words if w in chunk_lower)
            if wants_meta and position < AUTHOR_BONUS_POSITIONS:
                score += AUTHOR_BONUS
            scored.append(ScoredChunk(chunk=chunk, score=score))
        return scored

    def retrieve(
        self,
        query:    str,
        chunks:   Sequence[DocumentChunk],
        top_k:    int,
        language: str | None = None,
    ) -> list[DocumentChunk]:
        """
        Rank chunks against ``query`` and return at most ``top_k`` of them.

        Returns:
            Chunk objects from ``chunks`` (verbatim), best first. Ties keep
            their input order.
        """
        if not chunks or top_k <= 0:
            return []

        # sorted() is stable: equal scores keep manuscript order
        ranked = sorted(self.score(query, chunks, language), key=lambda s: s.score, reverse=True)

        selected = [s for s in ranked if s.score >= MIN_SCORE_THRESHOLD]
        fallback = len(selected) < MIN_RESULTS
        if fallback:
            selected = ranked[:MIN_RESULTS]

        results = [s.chunk for s in selected[:top_k]]
        logger.debug(
            "KeywordRetriever | chunks=%d returned=%d fallback=%s top_score=%d",
            len(chunks), len(results), fallback, ranked[0].score,
        )
        return results
