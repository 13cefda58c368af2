"""
Manuscript API — upload / inspection endpoints

POST /api/v1/manuscript/extract   → replace the resident manuscript, return axioms
GET  /api/v1/manuscript/snippets  → verbatim snippets from the last extraction
GET  /api/v1/manuscript           → summary of what is currently loaded

Errors raised by the service (DecodeError, ParseError, UpstreamError, ...)
are rendered by the ManuscriptError handler in main.py.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends

from manuscript_chat.api.dependencies import get_manuscript_service
from manuscript_chat.schemas.manuscript import (
    ErrorResponse,
    ExtractRequest,
    ExtractResponse,
    ManuscriptSummary,
    SnippetsResponse,
)
from manuscript_chat.services.manuscript import ManuscriptService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manuscript", tags=["Manuscript"])


@router.post(
    "/extract",
    response_model=ExtractResponse,
    summary="Extract axioms from a PDF manuscript",
    description=(
        "Decodes the base64 PDF, runs one multimodal extraction completion and "
        "replaces the resident manuscript. Any previous chat history is discarded."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Payload is not a readable PDF"},
        500: {"model": ErrorResponse, "description": "LLM credential not configured"},
        502: {"model": ErrorResponse, "description": "LLM request or output parsing failed"},
    },
)
async def extract_manuscript(
    body:    ExtractRequest,
    service: ManuscriptService = Depends(get_manuscript_service),
) -> ExtractResponse:
    t0 = time.perf_counter()
    axioms = await service.extract(body.pdf_base64, body.language)

    logger.info(
        "ManuscriptAPI | extract language=%s axioms=%d chunks=%d latency_ms=%.1f",
        body.language, len(axioms), service.chunk_count, (time.perf_counter() - t0) * 1000,
    )
    return ExtractResponse(
        axioms=axioms,
        snippet_count=len(service.get_snippets()),
        chunk_count=service.chunk_count,
        metadata=service.metadata,
    )


@router.get(
    "/snippets",
    response_model=SnippetsResponse,
    summary="List snippets of the resident manuscript",
)
async def get_snippets(
    service: ManuscriptService = Depends(get_manuscript_service),
) -> SnippetsResponse:
    return SnippetsResponse(snippets=service.get_snippets())


@router.get(
    "",
    response_model=ManuscriptSummary,
    summary="Describe the resident manuscript",
)
async def get_manuscript(
    service: ManuscriptService = Depends(get_manuscript_service),
) -> ManuscriptSummary:
    return service.summary()
