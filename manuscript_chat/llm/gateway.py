"""
LLM Gateway — single call site for every completion request.

  ┌─────────────────────────────────────────────────────┐
  │  LLMGateway.invoke() / .stream()                    │
  │       │                                             │
  │       ▼                                             │
  │  check_credentials()        ← fail fast, no I/O     │
  │       │                                             │
  │       ▼                                             │
  │  build_llm()                ← ChatOpenAI against an │
  │       │                       OpenAI-compatible URL │
  │       ▼                                             │
  │  ainvoke / astream          ← errors → UpstreamError│
  │       │                                             │
  │       ▼                                             │
  │  log model / latency / size                         │
  └─────────────────────────────────────────────────────┘

Pacing (RateLimiter) belongs to the ManuscriptSession, not the gateway, so
one gateway can be shared by several independent sessions.

No retries and no provider fallback: a failed call surfaces immediately.
"""

from __future__ import annotations

import logging
import time
from typing import AsyncIterator, Final

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from manuscript_chat.core.config import Settings, settings as default_settings
from manuscript_chat.core.errors import ConfigurationError, ManuscriptError, UpstreamError

logger = logging.getLogger(__name__)

# Values that show up when an env template was copied but never filled in
_PLACEHOLDER_KEYS: Final[frozenset[str]] = frozenset({
    "", "undefined", "null", "none", "changeme", "your-api-key", "your_api_key",
})


def _content_text(content) -> str:
    """Flatten a message/chunk ``content`` (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class LLMGateway:
    """
    Provider-facing LLM interface.

    Usage::

        gateway = LLMGateway()
        raw     = await gateway.invoke(messages, json_mode=True)

        async for delta in gateway.stream(history):
            ...
    """

    def __init__(self, cfg: Settings | None = None) -> None:
        self._settings = cfg or default_settings

    @property
    def model_name(self) -> str:
        return self._settings.llm_model

    # -----------------------------------------------------------------------
    # Credentials
    # -----------------------------------------------------------------------

    def check_credentials(self) -> str:
        """
        Return the API key, or raise ConfigurationError if it is missing or
        still a placeholder. Called before any network I/O.
        """
        key = (self._settings.groq_api_key or "").strip()
        if key.lower() in _PLACEHOLDER_KEYS:
            raise ConfigurationError(
                "LLM API key is not configured. Set GROQ_API_KEY (or LLM_API_KEY)."
            )
        return key

    # -----------------------------------------------------------------------
    # Model construction
    # -----------------------------------------------------------------------

    def build_llm(self, streaming: bool = False) -> BaseChatModel:
        """Instantiate the LangChain chat model for one request."""
        cfg = self._settings
        return ChatOpenAI(
            model=cfg.llm_model,
            api_key=self.check_credentials(),
            base_url=cfg.llm_base_url,
            temperature=cfg.llm_temperature,
            max_tokens=cfg.llm_max_tokens,
            timeout=cfg.llm_request_timeout,
            max_retries=0,
            streaming=streaming,
        )

    # -----------------------------------------------------------------------
    # Non-streaming invoke
    # -----------------------------------------------------------------------

    async def invoke(self, messages: list[BaseMessage], json_mode: bool = False) -> str:
        """
        Run one completion and return its text.

        Raises:
            ConfigurationError: missing credential.
            UpstreamError:      any provider / transport failure.
        """
        llm = self.build_llm(streaming=False)
        if json_mode:
            llm = llm.bind(response_format={"type": "json_object"})

        t0 = time.perf_counter()
        try:
            result = await llm.ainvoke(messages)
        except ManuscriptError:
            raise
        except Exception as exc:
            logger.error("LLMGateway | invoke failed model=%s: %s", self.model_name, exc)
            raise UpstreamError(f"LLM request failed: {type(exc).__name__}: {exc}") from exc

        content = _content_text(result.content)
        logger.info(
            "LLMGateway | invoke model=%s json_mode=%s chars_out=%d latency_ms=%.1f",
            self.model_name, json_mode, len(content), (time.perf_counter() - t0) * 1000,
        )
        return content

    # -----------------------------------------------------------------------
    # Streaming invoke
    # -----------------------------------------------------------------------

    async def stream(self, messages: list[BaseMessage]) -> AsyncIterator[str]:
        """
        Yield content deltas in arrival order. Empty deltas are skipped.

        Provider errors propagate untouched so the caller can tell a failure
        before the first delta from one mid-stream.
        """
        llm = self.build_llm(streaming=True)

        t0 = time.perf_counter()
        total_chars = 0
        async for chunk in llm.astream(messages):
            text = _content_text(chunk.content)
            if text:
                total_chars += len(text)
                yield text

        logger.info(
            "LLMGateway | stream model=%s chars_out=%d latency_ms=%.1f",
            self.model_name, total_chars, (time.perf_counter() - t0) * 1000,
        )
