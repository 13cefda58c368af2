"""
Unit Tests — LLMGateway

ChatOpenAI is patched wherever a call would leave the process.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk, HumanMessage
from langchain_openai import ChatOpenAI

from manuscript_chat.core.config import Settings
from manuscript_chat.core.errors import ConfigurationError, UpstreamError
from manuscript_chat.llm.gateway import LLMGateway, _content_text

pytestmark = pytest.mark.unit


def _gateway(key: str = "gsk-test-key", **overrides) -> LLMGateway:
    return LLMGateway(Settings(groq_api_key=key, **overrides))


class TestCredentials:

    @pytest.mark.parametrize("key", ["", "   ", "undefined", "null", "NULL", "changeme"])
    def test_placeholder_keys_rejected(self, key):
        with pytest.raises(ConfigurationError) as exc_info:
            _gateway(key).check_credentials()
        assert exc_info.value.error_code == "CONFIGURATION_ERROR"

    def test_real_key_returned(self):
        assert _gateway("gsk-live-abc").check_credentials() == "gsk-live-abc"

    def test_env_alias(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.setenv("LLM_API_KEY", "gsk-from-alias")
        assert LLMGateway(Settings()).check_credentials() == "gsk-from-alias"


class TestBuildLlm:

    def test_chat_openai_configured_from_settings(self):
        gateway = _gateway(llm_model="llama-test", llm_temperature=0.2, llm_max_tokens=512)
        llm = gateway.build_llm(streaming=True)

        assert isinstance(llm, ChatOpenAI)
        assert llm.model_name == "llama-test"
        assert llm.temperature == 0.2
        assert llm.max_tokens == 512
        assert llm.streaming is True
        assert llm.openai_api_base == "https://api.groq.com/openai/v1"

    def test_missing_key_fails_before_construction(self):
        with patch("manuscript_chat.llm.gateway.ChatOpenAI") as mock_cls:
            with pytest.raises(ConfigurationError):
                _gateway("").build_llm()
            mock_cls.assert_not_called()


class TestInvoke:

    async def test_returns_text(self):
        with patch("manuscript_chat.llm.gateway.ChatOpenAI") as mock_cls:
            mock_cls.return_value.ainvoke = AsyncMock(return_value=AIMessage(content="plain answer"))
            result = await _gateway().invoke([HumanMessage(content="hi")])

        assert result == "plain answer"
        mock_cls.return_value.bind.assert_not_called()

    async def test_json_mode_binds_response_format(self):
        with patch("manuscript_chat.llm.gateway.ChatOpenAI") as mock_cls:
            bound = MagicMock()
            bound.ainvoke = AsyncMock(return_value=AIMessage(content='{"axioms": []}'))
            mock_cls.return_value.bind.return_value = bound

            result = await _gateway().invoke([HumanMessage(content="hi")], json_mode=True)

        assert result == '{"axioms": []}'
        mock_cls.return_value.bind.assert_called_once_with(response_format={"type": "json_object"})

    async def test_provider_error_wrapped(self):
        with patch("manuscript_chat.llm.gateway.ChatOpenAI") as mock_cls:
            mock_cls.return_value.ainvoke = AsyncMock(side_effect=RuntimeError("rate limited"))
            with pytest.raises(UpstreamError) as exc_info:
                await _gateway().invoke([HumanMessage(content="hi")])

        assert "rate limited" in exc_info.value.message
        assert exc_info.value.status_code == 502

    async def test_missing_key_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            await _gateway("undefined").invoke([HumanMessage(content="hi")])


class TestStream:

    async def test_yields_non_empty_deltas(self):
        async def _astream(messages):
            for text in ["Once", "", " upon", " a time"]:
                yield AIMessageChunk(content=text)

        with patch("manuscript_chat.llm.gateway.ChatOpenAI") as mock_cls:
            mock_cls.return_value.astream = _astream
            deltas = [d async for d in _gateway().stream([HumanMessage(content="story")])]

        assert deltas == ["Once", " upon", " a time"]
        assert mock_cls.call_args.kwargs["streaming"] is True


class TestContentText:

    def test_string(self):
        assert _content_text("abc") == "abc"

    def test_parts(self):
        parts = ["a", {"type": "text", "text": "b"}, {"type": "image_url", "image_url": {"url": "x"}}]
        assert _content_text(parts) == "ab"
