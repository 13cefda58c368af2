"""
Unit Tests — ChatSession history and streaming
"""

from __future__ import annotations

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from manuscript_chat.core.errors import ConfigurationError, StreamError, UpstreamError
from manuscript_chat.llm.chat_session import ChatSession

pytestmark = pytest.mark.unit


async def _drain(stream) -> list[str]:
    return [delta async for delta in stream]


class TestChatSession:

    def test_history_seeded_with_system_message(self, fake_gateway):
        chat = ChatSession(fake_gateway, "You are a researcher.")

        assert len(chat.history) == 1
        assert isinstance(chat.history[0], SystemMessage)
        assert chat.history[0].content == "You are a researcher."
        assert chat.turns == 0

    def test_history_is_a_copy(self, fake_gateway):
        chat = ChatSession(fake_gateway, "sys")
        chat.history.append(HumanMessage(content="sneaky"))
        assert len(chat.history) == 1

    async def test_streams_deltas_in_order_and_commits_reply(self, fake_gateway, stream_factory):
        fake_gateway.stream = stream_factory(["The ", "city ", "listens."])
        chat = ChatSession(fake_gateway, "sys")

        deltas = await _drain(chat.send_message_stream("What does the city do?"))

        assert deltas == ["The ", "city ", "listens."]
        kinds = [type(m) for m in chat.history]
        assert kinds == [SystemMessage, HumanMessage, AIMessage]
        assert chat.history[1].content == "What does the city do?"
        assert chat.history[2].content == "The city listens."
        assert chat.turns == 1

    async def test_full_history_sent_each_turn(self, fake_gateway, stream_factory):
        fake_gateway.stream = stream_factory(["ok"])
        chat = ChatSession(fake_gateway, "sys")

        await _drain(chat.send_message_stream("first"))
        await _drain(chat.send_message_stream("second"))

        first_call, second_call = fake_gateway.stream.calls
        assert [m.content for m in first_call] == ["sys", "first"]
        assert [m.content for m in second_call] == ["sys", "first", "ok", "second"]

    async def test_failure_before_first_delta_is_upstream_error(self, fake_gateway, stream_factory):
        fake_gateway.stream = stream_factory([], error=ConnectionError("connection refused"))
        chat = ChatSession(fake_gateway, "sys")

        with pytest.raises(UpstreamError):
            await _drain(chat.send_message_stream("hello"))

        # user message recorded, no assistant reply
        assert [type(m) for m in chat.history] == [SystemMessage, HumanMessage]

    async def test_failure_mid_stream_is_stream_error(self, fake_gateway, stream_factory):
        fake_gateway.stream = stream_factory(["partial "], error=TimeoutError("read timeout"))
        chat = ChatSession(fake_gateway, "sys")
        received: list[str] = []

        with pytest.raises(StreamError):
            async for delta in chat.send_message_stream("hello"):
                received.append(delta)

        assert received == ["partial "]
        assert chat.turns == 0

    async def test_manuscript_errors_pass_through_unwrapped(self, fake_gateway, stream_factory):
        fake_gateway.stream = stream_factory([], error=ConfigurationError("no key"))
        chat = ChatSession(fake_gateway, "sys")

        with pytest.raises(ConfigurationError):
            await _drain(chat.send_message_stream("hello"))
