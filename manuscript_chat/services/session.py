"""
Manuscript session — the resident state for one active manuscript.

Holds, per session context:
  - DocumentState      text, chunks, snippets, metadata of the current manuscript
  - ChatSession        created lazily and tagged with the generation it serves
  - RateLimiter        one request timestamp shared by extraction and chat
  - asyncio.Lock       serialises extraction and chat turns

Generation counter:
  Every extraction bumps ``generation``. A ChatSession created for an older
  generation is never reused: its system instruction and history describe a
  different manuscript.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from manuscript_chat.core.config import Settings, settings as default_settings
from manuscript_chat.core.rate_limit import RateLimiter
from manuscript_chat.llm.chat_session import ChatSession
from manuscript_chat.processing.chunking import DocumentChunk
from manuscript_chat.schemas.manuscript import ManuscriptMetadata

logger = logging.getLogger(__name__)


@dataclass
class DocumentState:
    generation: int                   = 0
    full_text:  str                   = ""
    chunks:     list[DocumentChunk]   = field(default_factory=list)
    snippets:   list[str]             = field(default_factory=list)
    metadata:   ManuscriptMetadata    = field(default_factory=ManuscriptMetadata)
    pdf_base64: str | None            = None


class ManuscriptSession:
    """
    Explicit context object for one manuscript conversation.

    Fields are replaced, never mutated in place: ``commit()`` swaps the whole
    DocumentState in one assignment so readers never see a half-built state.
    """

    def __init__(self, cfg: Settings | None = None, rate_limiter: RateLimiter | None = None) -> None:
        self._settings      = cfg or default_settings
        self.state          = DocumentState()
        self.rate_limiter   = rate_limiter or RateLimiter(self._settings.min_request_gap_seconds)
        self.lock           = asyncio.Lock()
        self._chat_session: ChatSession | None = None
        self._chat_generation: int | None      = None

    @property
    def generation(self) -> int:
        return self.state.generation

    @property
    def chat_session(self) -> ChatSession | None:
        return self._chat_session

    # -----------------------------------------------------------------------
    # Extraction lifecycle
    # -----------------------------------------------------------------------

    def begin_extraction(self, pdf_base64: str) -> int:
        """Reset to an empty state for a new generation and hold the payload."""
        generation = self.state.generation + 1
        self.state = DocumentState(generation=generation, pdf_base64=pdf_base64)
        self.discard_chat_session()
        logger.info("ManuscriptSession | extraction started generation=%d", generation)
        return generation

    def commit(self, state: DocumentState) -> None:
        if state.generation != self.state.generation:
            raise RuntimeError(
                f"stale commit: generation {state.generation} != {self.state.generation}"
            )
        self.state = state
        logger.info(
            "ManuscriptSession | committed generation=%d chars=%d chunks=%d snippets=%d",
            state.generation, len(state.full_text), len(state.chunks), len(state.snippets),
        )

    def release_payload(self) -> None:
        self.state.pdf_base64 = None

    # -----------------------------------------------------------------------
    # Chat session lifecycle
    # -----------------------------------------------------------------------

    def chat_session_for(self, generation: int, factory: Callable[[], ChatSession]) -> ChatSession:
        """Return the session for ``generation``, creating it with ``factory`` if needed."""
        if self._chat_session is None or self._chat_generation != generation:
            self._chat_session    = factory()
            self._chat_generation = generation
            logger.debug("ManuscriptSession | chat session created generation=%d", generation)
        return self._chat_session

    def discard_chat_session(self) -> None:
        if self._chat_session is not None:
            logger.debug("ManuscriptSession | chat session discarded generation=%s", self._chat_generation)
        self._chat_session    = None
        self._chat_generation = None
