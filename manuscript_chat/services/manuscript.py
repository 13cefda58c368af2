"""
Manuscript Service

Inbound facade over one ManuscriptSession:
  extract(pdf_base64, language)      → list[Axiom]   (replaces the manuscript)
  get_snippets()                     → list[str]
  chat(prompt, language, on_chunk)   → None          (callback streaming)
  stream_chat(prompt, language)      → AsyncIterator[str]

Every operation that touches the LLM runs under the session lock, so an
extraction never interleaves with a chat turn and two turns never append
to the same history concurrently.
"""

from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator

from manuscript_chat.core.config import Settings, settings as default_settings
from manuscript_chat.llm.gateway import LLMGateway
from manuscript_chat.processing.extractor import ExtractionOrchestrator
from manuscript_chat.rag.pipeline import ChatOrchestrator, ChunkCallback
from manuscript_chat.schemas.manuscript import Axiom, ManuscriptMetadata, ManuscriptSummary
from manuscript_chat.services.session import ManuscriptSession

logger = logging.getLogger(__name__)


class ManuscriptService:

    def __init__(
        self,
        cfg:       Settings | None = None,
        gateway:   LLMGateway | None = None,
        session:   ManuscriptSession | None = None,
        extractor: ExtractionOrchestrator | None = None,
        chat:      ChatOrchestrator | None = None,
    ) -> None:
        self._settings  = cfg or default_settings
        self.gateway    = gateway or LLMGateway(self._settings)
        self.session    = session or ManuscriptSession(self._settings)
        self._extractor = extractor or ExtractionOrchestrator(self.session, self.gateway, self._settings)
        self._chat      = chat or ChatOrchestrator(self.session, self.gateway, self._settings)

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    async def extract(self, pdf_base64: str, language: str) -> list[Axiom]:
        async with self.session.lock:
            return await self._extractor.extract(pdf_base64, language)

    def get_snippets(self) -> list[str]:
        return list(self.session.state.snippets)

    async def stream_chat(self, prompt: str, language: str) -> AsyncIterator[str]:
        async with self.session.lock:
            async with contextlib.aclosing(self._chat.stream_reply(prompt, language)) as stream:
                async for delta in stream:
                    yield delta

    async def chat(self, prompt: str, language: str, on_chunk: ChunkCallback) -> None:
        async with self.session.lock:
            await self._chat.chat(prompt, language, on_chunk)

    def check_credentials(self) -> None:
        self.gateway.check_credentials()

    # -----------------------------------------------------------------------
    # Accessors
    # -----------------------------------------------------------------------

    @property
    def metadata(self) -> ManuscriptMetadata:
        return self.session.state.metadata

    @property
    def chunk_count(self) -> int:
        return len(self.session.state.chunks)

    def summary(self) -> ManuscriptSummary:
        state = self.session.state
        return ManuscriptSummary(
            title=state.metadata.title,
            author=state.metadata.author,
            summary=state.metadata.summary,
            chunk_count=len(state.chunks),
            has_structural_map=bool(state.metadata.structural_map),
            generation=state.generation,
        )
