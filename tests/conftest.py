"""
Root conftest.py — Shared fixtures for ALL tests (unit + integration)

Fixture overview:
  test_settings   : Settings with no request gap (tests never sleep)
  make_pdf        : factory building real PDFs in memory with PyMuPDF
  fake_gateway    : MagicMock(spec=LLMGateway), no network, scripted output
  session         : a fresh ManuscriptSession bound to test_settings

Environment strategy:
  - GROQ_API_KEY is set to a dummy value BEFORE any package import, so the
    module-level settings object sees a configured credential.
  - No test ever reaches a real LLM endpoint: every completion goes through
    fake_gateway or a patched ChatOpenAI.

How to run:
  pytest                          # all tests
  pytest -m unit                  # unit tests only
  pytest -m integration           # ASGI-level API tests
"""

from __future__ import annotations

import base64
import json
import os
from typing import AsyncIterator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

# ─────────────────────────────────────────────────────────────────────────────
# Patch settings BEFORE any package imports so modules read test config
# ─────────────────────────────────────────────────────────────────────────────

os.environ.setdefault("GROQ_API_KEY", "gsk-test-key")
os.environ.setdefault("APP_ENV",      "development")
os.environ.setdefault("DEBUG",        "false")

from manuscript_chat.core.config import Settings  # noqa: E402
from manuscript_chat.llm.gateway import LLMGateway  # noqa: E402
from manuscript_chat.services.session import ManuscriptSession  # noqa: E402


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        groq_api_key="gsk-test-key",
        min_request_gap_seconds=0.0,
        app_env="development",
    )


@pytest.fixture
def session(test_settings) -> ManuscriptSession:
    return ManuscriptSession(test_settings)


# ─────────────────────────────────────────────────────────────────────────────
# Sample manuscript text and PDFs
# ─────────────────────────────────────────────────────────────────────────────

MANUSCRIPT_LINES = [
    "The Architecture of Silence",
    "by Miriam Okafor",
    "",
    "Contents: I. Structural Silence  II. The Listening City  III. Echoes",
    "",
    "Chapter One. Structural Silence",
] + [
    f"Line {i:02d}: silence shapes the city as much as stone and glass do."
    for i in range(24)
]

MANUSCRIPT_TEXT = "\n".join(MANUSCRIPT_LINES)


def build_pdf(pages: list[str]) -> bytes:
    """Build a PDF with one text page per entry using PyMuPDF."""
    import fitz

    doc = fitz.open()
    try:
        for text in pages:
            page = doc.new_page()
            if text:
                page.insert_text((50, 60), text, fontsize=9)
        return doc.tobytes()
    finally:
        doc.close()


@pytest.fixture
def make_pdf() -> Callable[[list[str]], bytes]:
    return build_pdf


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Two-page text PDF whose text layer is comfortably 'substantial'."""
    return build_pdf([MANUSCRIPT_TEXT, "Chapter Two. The Listening City\n" + MANUSCRIPT_TEXT])


@pytest.fixture
def sample_pdf_base64(sample_pdf_bytes) -> str:
    return base64.b64encode(sample_pdf_bytes).decode("ascii")


# ─────────────────────────────────────────────────────────────────────────────
# Scripted model output
# ─────────────────────────────────────────────────────────────────────────────

def extraction_json(
    axiom_count: int = 13,
    snippets:    list[str] | None = None,
    full_text:   str = "",
    title:       str = "The Architecture of Silence",
    author:      str = "Miriam Okafor",
) -> str:
    payload = {
        "axioms": [
            {"term": f"Term {i}", "definition": f"Definition {i}", "significance": f"Why {i}"}
            for i in range(axiom_count)
        ],
        "snippets": snippets if snippets is not None else [f"snippet {i}" for i in range(10)],
        "metadata": {"title": title, "author": author, "chapters": "I. Structural Silence; II. The Listening City"},
        "fullText": full_text,
    }
    return json.dumps(payload, ensure_ascii=False)


def make_stream(deltas: list[str], error: Exception | None = None) -> Callable[..., AsyncIterator[str]]:
    """
    Return a replacement for LLMGateway.stream that yields ``deltas`` and
    then raises ``error`` (if given). Each call records a snapshot of the
    messages it was sent on ``.calls``.
    """
    calls: list[list] = []

    async def _stream(messages):
        calls.append(list(messages))
        for delta in deltas:
            yield delta
        if error is not None:
            raise error

    _stream.calls = calls
    return _stream


@pytest.fixture
def fake_gateway() -> MagicMock:
    """
    LLMGateway double:
      - check_credentials() succeeds
      - invoke() returns a valid 13-axiom extraction payload
      - stream() yields "Hello", " world"
    """
    gateway = MagicMock(spec=LLMGateway)
    gateway.check_credentials = MagicMock(return_value="gsk-test-key")
    gateway.invoke            = AsyncMock(return_value=extraction_json())
    gateway.stream            = make_stream(["Hello", " world"])
    gateway.model_name        = "test-model"
    return gateway


@pytest.fixture
def extraction_payload() -> Callable[..., str]:
    """Factory for a scripted extraction completion (JSON text)."""
    return extraction_json


@pytest.fixture
def stream_factory() -> Callable[..., Callable[..., AsyncIterator[str]]]:
    """Factory for scripted LLMGateway.stream replacements."""
    return make_stream


@pytest.fixture
def manuscript_text() -> str:
    return MANUSCRIPT_TEXT
