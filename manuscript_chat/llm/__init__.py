"""
LLM Package

Thin layer over an OpenAI-compatible chat completions endpoint (Groq by
default) via langchain-openai:

  gateway.py       credential check, model construction, invoke / stream
  chat_session.py  append-only conversation history with streamed replies

Public API::

    from manuscript_chat.llm import ChatSession, LLMGateway

    gateway = LLMGateway()
    session = ChatSession(gateway, system_instruction)
    async for delta in session.send_message_stream(prompt):
        ...
"""

from manuscript_chat.llm.chat_session import ChatSession
from manuscript_chat.llm.gateway import LLMGateway

__all__ = [
    "ChatSession",
    "LLMGateway",
]
