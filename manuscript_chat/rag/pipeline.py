"""
Chat Pipeline — one user turn against the resident manuscript.

  User prompt
    │
    ▼
  check_credentials()      ← ConfigurationError, no I/O
    │
    ▼
  RateLimiter.acquire()    ← minimum gap between outbound calls
    │
    ▼
  KeywordRetriever         ← lexical scoring + low-score fallback
    │
    ▼
  build_augmented_prompt   ← grounded | structure-only template
    │
    ▼
  ChatSession (lazy, per generation)
    │
    ▼
  Streamed deltas          ← async iterator, or callback via chat()

Failure policy:
  Any exception, task cancellation or an abandoned iterator discards the
  chat session before the error propagates. The next turn starts a fresh
  session, so a half-finished exchange never leaks into later history.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, Union

from manuscript_chat.core.config import Settings, settings as default_settings
from manuscript_chat.llm.chat_session import ChatSession
from manuscript_chat.llm.gateway import LLMGateway
from manuscript_chat.rag.prompt_manager import build_augmented_prompt, build_system_instruction
from manuscript_chat.rag.retriever import KeywordRetriever
from manuscript_chat.services.session import ManuscriptSession

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], Union[None, Awaitable[None]]]


class ChatOrchestrator:
    """
    Usage::

        orchestrator = ChatOrchestrator(session, gateway)

        async for delta in orchestrator.stream_reply("Who wrote this?", "en"):
            ...

        await orchestrator.chat("Summarise chapter 3", "en", on_chunk=print)

    Callers are expected to hold ``session.lock`` for the whole turn.
    """

    def __init__(
        self,
        session:   ManuscriptSession,
        gateway:   LLMGateway,
        cfg:       Settings | None = None,
        retriever: KeywordRetriever | None = None,
    ) -> None:
        self._session   = session
        self._gateway   = gateway
        self._settings  = cfg or default_settings
        self._retriever = retriever or KeywordRetriever()

    def build_prompt(self, prompt: str, language: str | None) -> str:
        """Retrieve chunks for ``prompt`` and render the augmented user message."""
        state  = self._session.state
        chunks = self._retriever.retrieve(
            prompt, state.chunks, top_k=self._settings.retrieval_top_k, language=language,
        )
        return build_augmented_prompt(prompt, chunks, state.metadata)

    async def stream_reply(self, prompt: str, language: str | None) -> AsyncIterator[str]:
        """
        Yield the model's reply to ``prompt`` delta by delta.

        Raises:
            ConfigurationError: missing credential (before any I/O).
            UpstreamError:      request failed before output started.
            StreamError:        stream broke mid-reply.
        """
        self._gateway.check_credentials()
        await self._session.rate_limiter.acquire()

        state     = self._session.state
        augmented = self.build_prompt(prompt, language)
        chat      = self._session.chat_session_for(
            state.generation,
            lambda: ChatSession(self._gateway, build_system_instruction(state.metadata, language)),
        )

        t0 = time.monotonic()
        deltas = 0
        try:
            async for delta in chat.send_message_stream(augmented):
                deltas += 1
                yield delta
        except (Exception, asyncio.CancelledError, GeneratorExit) as exc:
            logger.warning(
                "ChatOrchestrator | turn aborted generation=%d after %d deltas: %s",
                state.generation, deltas, type(exc).__name__,
            )
            self._session.discard_chat_session()
            raise

        logger.info(
            "ChatOrchestrator | turn complete generation=%d deltas=%d latency_ms=%.0f",
            state.generation, deltas, (time.monotonic() - t0) * 1000,
        )

    async def chat(self, prompt: str, language: str | None, on_chunk: ChunkCallback) -> None:
        """Drive ``stream_reply`` into ``on_chunk``; sync and async callbacks both work."""
        async with contextlib.aclosing(self.stream_reply(prompt, language)) as stream:
            async for delta in stream:
                result = on_chunk(delta)
                if inspect.isawaitable(result):
                    await result
