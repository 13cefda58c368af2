"""
PDF Access  —  PyMuPDF text layer and page rasterisation
═════════════════════════════════════════════════════════

Three operations over raw PDF bytes, all backed by PyMuPDF (fitz):

  inspect()       Open the document and return its page count.
                  The single validity check: a byte stream PyMuPDF cannot
                  open is a DecodeError, surfaced to the caller.

  extract_text()  Read the native text layer of every page, joined with
                  blank lines. Scanned / image-only PDFs simply produce an
                  empty transcript; no OCR happens at this stage. Any
                  failure here is logged and recovered as "" so extraction
                  can still proceed from the rendered page images.

  render_pages()  Rasterise the first N pages to JPEG data URLs for the
                  multimodal extraction prompt (visual layout / style).

All blocking PyMuPDF work runs in the default thread executor so the event
loop is never stalled. fitz.open() returns an independent document object
per call, so concurrent calls do not share state.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import time

from manuscript_chat.core.errors import DecodeError, ExtractionError

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX_RE = re.compile(r"^data:[\w/+.-]+;base64,", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Payload decoding
# ---------------------------------------------------------------------------

def decode_pdf_payload(pdf_base64: str) -> bytes:
    """
    Decode a base64 PDF payload to bytes.

    Accepts an optional ``data:application/pdf;base64,`` prefix and
    embedded whitespace / line breaks.

    Raises:
        DecodeError: if the payload is empty or not valid base64.
    """
    payload = _DATA_URL_PREFIX_RE.sub("", pdf_base64.strip())
    payload = "".join(payload.split())
    if not payload:
        raise DecodeError("PDF payload is empty")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"PDF payload is not valid base64: {exc}") from exc


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class PyMuPDFReader:
    """
    Async facade over PyMuPDF.

    Usage::

        reader     = PyMuPDFReader()
        page_count = await reader.inspect(pdf_bytes)
        transcript = await reader.extract_text(pdf_bytes)
        images     = await reader.render_pages(pdf_bytes, max_pages=4)
    """

    async def inspect(self, pdf_bytes: bytes) -> int:
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, self._page_count_sync, pdf_bytes)
        except Exception as exc:
            raise DecodeError(f"Payload is not a readable PDF: {exc}") from exc

    async def extract_text(self, pdf_bytes: bytes) -> str:
        loop = asyncio.get_event_loop()
        t0 = time.monotonic()

        try:
            text = await loop.run_in_executor(None, self._extract_text_sync, pdf_bytes)
        except ExtractionError as exc:
            logger.warning("PyMuPDFReader | text layer unavailable, using empty transcript: %s", exc)
            text = ""

        logger.info(
            "PyMuPDFReader | text layer chars=%d elapsed_ms=%.0f",
            len(text), (time.monotonic() - t0) * 1000,
        )
        return text

    async def render_pages(
        self,
        pdf_bytes:    bytes,
        max_pages:    int   = 4,
        scale:        float = 1.5,
        jpeg_quality: int   = 80,
    ) -> list[str]:
        loop = asyncio.get_event_loop()
        try:
            images = await loop.run_in_executor(
                None, self._render_pages_sync, pdf_bytes, max_pages, scale, jpeg_quality,
            )
        except Exception as exc:
            raise DecodeError(f"Failed to render PDF pages: {exc}") from exc

        logger.info("PyMuPDFReader | rendered pages=%d scale=%.1f", len(images), scale)
        return images

    # -----------------------------------------------------------------------
    # Blocking implementations — run in thread executor
    # -----------------------------------------------------------------------

    @staticmethod
    def _page_count_sync(pdf_bytes: bytes) -> int:
        import fitz  # PyMuPDF; imported here to avoid module-level import cost

        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            return doc.page_count

    @staticmethod
    def _extract_text_sync(pdf_bytes: bytes) -> str:
        import fitz

        try:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
                pages = [(page.get_text("text") or "").strip() for page in doc]
        except Exception as exc:
            raise ExtractionError(str(exc)) from exc
        return "\n\n".join(p for p in pages if p)

    @staticmethod
    def _render_pages_sync(
        pdf_bytes:    bytes,
        max_pages:    int,
        scale:        float,
        jpeg_quality: int,
    ) -> list[str]:
        import fitz

        images: list[str] = []
        matrix = fitz.Matrix(scale, scale)
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for page_index in range(min(doc.page_count, max_pages)):
                pixmap = doc[page_index].get_pixmap(matrix=matrix)
                jpeg = pixmap.tobytes("jpeg", jpg_quality=jpeg_quality)
                images.append("data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii"))
        return images
