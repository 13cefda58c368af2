"""
Extraction Orchestrator
═══════════════════════

Turns one uploaded PDF into the resident DocumentState of a session.

Flow:
  0.  Credential check         → ConfigurationError before any I/O
      Rate-limit acquire
      session.begin_extraction → new generation, empty state, chat dropped
  1.  Decode base64            → DecodeError
  2.  Open PDF / text layer    → DecodeError (unreadable) | "" (no text layer)
  3.  Render leading pages     → JPEG data URLs
  4.  One multimodal completion in JSON mode
  5.  Locate + parse JSON      → ParseError
  6.  Choose full text, chunk it
  7.  Embed the structural map into metadata.chapters (skipped for empty text)
  8.  Commit the new DocumentState in one assignment

The extraction prompt carries no manuscript metadata: the state was just
reset, so there is no current manuscript to describe.

The raw payload is released in ``finally`` whatever the outcome. A failure
at any step leaves only the reset empty state behind, never a mix of old
and new manuscript data.
"""

from __future__ import annotations

import json
import logging
import time

from pydantic import ValidationError

from manuscript_chat.core.config import Settings, settings as default_settings
from manuscript_chat.core.errors import ParseError
from manuscript_chat.llm.gateway import LLMGateway
from manuscript_chat.processing.chunking import FixedWindowChunker
from manuscript_chat.processing.pdf import PyMuPDFReader, decode_pdf_payload
from manuscript_chat.rag.prompt_manager import (
    build_extraction_messages,
    build_structural_map,
    build_transcript_preview,
)
from manuscript_chat.schemas.manuscript import Axiom, ExtractionPayload
from manuscript_chat.services.session import DocumentState, ManuscriptSession

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON location and parsing
# ---------------------------------------------------------------------------

def extract_json_object(text: str) -> dict:
    """
    Parse ``text[first '{' : last '}' + 1]`` as a JSON object.

    The completion API is not trusted to return bare JSON: prose or code
    fences around the object are tolerated, anything else is a ParseError.
    """
    start = text.find("{")
    end   = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        logger.error("Extractor | no JSON object in model output. Raw content: %r", text)
        raise ParseError("Model output does not contain a JSON object")

    candidate = text[start:end + 1]
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.error("Extractor | JSON parse error: %s. Raw content: %r", exc, candidate)
        raise ParseError(f"Model output is not valid JSON: {exc.msg}") from exc

    if not isinstance(parsed, dict):
        raise ParseError("Model output JSON is not an object")
    return parsed


def parse_extraction_payload(raw: str) -> ExtractionPayload:
    data = extract_json_object(raw)
    try:
        return ExtractionPayload.model_validate(data)
    except ValidationError as exc:
        logger.error("Extractor | payload failed schema validation: %s", exc)
        raise ParseError(f"Model output does not match the extraction schema: {exc.error_count()} errors") from exc


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ExtractionOrchestrator:
    """
    Usage::

        orchestrator = ExtractionOrchestrator(session, gateway)
        axioms = await orchestrator.extract(pdf_base64, language="ar")

    Callers are expected to hold ``session.lock`` for the whole call.
    """

    def __init__(
        self,
        session: ManuscriptSession,
        gateway: LLMGateway,
        cfg:     Settings | None = None,
        reader:  PyMuPDFReader | None = None,
        chunker: FixedWindowChunker | None = None,
    ) -> None:
        self._session  = session
        self._gateway  = gateway
        self._settings = cfg or default_settings
        self._reader   = reader or PyMuPDFReader()
        self._chunker  = chunker or FixedWindowChunker.from_settings(self._settings)

    async def extract(self, pdf_base64: str, language: str) -> list[Axiom]:
        cfg = self._settings

        self._gateway.check_credentials()
        await self._session.rate_limiter.acquire()
        generation = self._session.begin_extraction(pdf_base64)

        t0 = time.monotonic()
        try:
            # ── Steps 1–3: payload → transcript + page images ───────────────
            pdf_bytes  = decode_pdf_payload(pdf_base64)
            page_count = await self._reader.inspect(pdf_bytes)
            transcript = await self._reader.extract_text(pdf_bytes)
            images     = await self._reader.render_pages(
                pdf_bytes,
                max_pages=cfg.max_rendered_pages,
                scale=cfg.render_scale,
                jpeg_quality=cfg.jpeg_quality,
            )

            # ── Step 4: one JSON-mode multimodal completion ─────────────────
            substantial = len(transcript.strip()) >= cfg.min_transcript_chars
            messages = build_extraction_messages(
                metadata=None,
                language=language,
                preview=build_transcript_preview(transcript, cfg.max_preview_chars),
                page_images=images,
                request_full_text=not substantial,
            )
            raw = await self._gateway.invoke(messages, json_mode=True)

            # ── Step 5: locate + validate the JSON object ───────────────────
            payload = parse_extraction_payload(raw)

            # ── Steps 6–7: full text, chunks, structural map ────────────────
            if substantial:
                full_text = transcript
            else:
                full_text = payload.full_text or transcript
            chunks   = self._chunker.chunk(full_text)
            metadata = payload.metadata
            if full_text.strip():
                metadata = metadata.with_structural_map(
                    build_structural_map(full_text, cfg.structural_map_chars)
                )

            # ── Step 8: atomic commit ───────────────────────────────────────
            self._session.commit(DocumentState(
                generation=generation,
                full_text=full_text,
                chunks=chunks,
                snippets=list(payload.snippets),
                metadata=metadata,
            ))
        finally:
            self._session.release_payload()

        logger.info(
            "Extractor | done generation=%d pages=%d images=%d transcript_chars=%d "
            "full_text_source=%s chunks=%d axioms=%d elapsed_ms=%.0f",
            generation, page_count, len(images), len(transcript),
            "text_layer" if substantial else "model", len(chunks), len(payload.axioms),
            (time.monotonic() - t0) * 1000,
        )
        return list(payload.axioms)
