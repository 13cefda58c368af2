"""
Chat Session — one linear conversation over a streaming completion API.

The history is append-only and seeded with a single system message that is
never removed. A turn is committed in two steps:

  1. the user message is appended before the request goes out;
  2. the assistant reply is appended only after the stream is exhausted.

A turn that fails or is abandoned half-way leaves the user message without
a reply. Callers must then drop the session rather than keep chatting on an
inconsistent history (ChatOrchestrator does exactly that).
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from manuscript_chat.core.errors import ManuscriptError, StreamError, UpstreamError
from manuscript_chat.llm.gateway import LLMGateway

logger = logging.getLogger(__name__)


class ChatSession:
    """
    Usage::

        session = ChatSession(gateway, system_instruction)
        async for delta in session.send_message_stream("What is chapter 2 about?"):
            print(delta, end="")
    """

    def __init__(self, gateway: LLMGateway, system_instruction: str) -> None:
        self._gateway = gateway
        self._history: list[BaseMessage] = [SystemMessage(content=system_instruction)]

    @property
    def history(self) -> list[BaseMessage]:
        return list(self._history)

    @property
    def turns(self) -> int:
        """Completed user/assistant exchanges."""
        return sum(1 for m in self._history if isinstance(m, AIMessage))

    async def send_message_stream(self, message: str) -> AsyncIterator[str]:
        """
        Append ``message``, stream the reply over the full history, and yield
        each text increment in arrival order.

        Raises:
            UpstreamError: the request failed before any output arrived.
            StreamError:   the stream broke after output had started.
        """
        self._history.append(HumanMessage(content=message))

        parts: list[str] = []
        try:
            async for delta in self._gateway.stream(self._history):
                parts.append(delta)
                yield delta
        except ManuscriptError:
            raise
        except Exception as exc:
            if parts:
                raise StreamError(
                    f"Stream interrupted after {len(parts)} chunks: {type(exc).__name__}: {exc}"
                ) from exc
            raise UpstreamError(f"Chat request failed: {type(exc).__name__}: {exc}") from exc

        reply = "".join(parts)
        self._history.append(AIMessage(content=reply))
        logger.debug("ChatSession | turn committed history=%d reply_chars=%d", len(self._history), len(reply))
