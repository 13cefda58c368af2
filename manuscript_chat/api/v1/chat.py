"""
Chat API — streamed answers about the resident manuscript

POST /api/v1/chat/stream   → Server-Sent Events (SSE)

Streaming (SSE) response format:
  event: token
  data: <delta_text>

  event: done
  data: {"latency_ms": 1234, "deltas": 87, "chars": 2410, "request_id": "..."}

  event: error
  data: {"error_code": "UPSTREAM_ERROR", "message": "...", "request_id": "..."}

A missing credential is reported as a plain JSON error before the stream
opens. Failures after that arrive as an ``error`` event, since the 200
status line has already been sent.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from manuscript_chat.api.dependencies import get_manuscript_service
from manuscript_chat.core.errors import ManuscriptError
from manuscript_chat.schemas.manuscript import ChatRequest, ErrorResponse
from manuscript_chat.services.manuscript import ManuscriptService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post(
    "/stream",
    summary="Ask about the manuscript (SSE streaming)",
    description=(
        "Returns a Server-Sent Events stream. "
        "Events: 'token' (content delta), 'done' (stats), 'error'."
    ),
    response_class=StreamingResponse,
    responses={500: {"model": ErrorResponse, "description": "LLM credential not configured"}},
)
async def chat_stream(
    request: Request,
    body:    ChatRequest,
    service: ManuscriptService = Depends(get_manuscript_service),
) -> StreamingResponse:
    service.check_credentials()
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    async def event_generator() -> AsyncIterator[str]:
        t0     = time.perf_counter()
        deltas = 0
        chars  = 0

        try:
            async for delta in service.stream_chat(body.prompt, body.language):
                deltas += 1
                chars  += len(delta)
                yield _sse_event("token", delta)

            yield _sse_event("done", {
                "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
                "deltas":     deltas,
                "chars":      chars,
                "request_id": request_id,
            })

        except ManuscriptError as exc:
            logger.error("ChatStream | %s: %s", exc.error_code, exc.message)
            yield _sse_event("error", {
                "error_code": exc.error_code,
                "message":    exc.message,
                "request_id": request_id,
            })
        except Exception as exc:
            logger.error("ChatStream | unexpected error: %s", exc, exc_info=True)
            yield _sse_event("error", {
                "error_code": "INTERNAL_ERROR",
                "message":    "An unexpected error occurred.",
                "request_id": request_id,
            })

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control":     "no-cache",
            "X-Accel-Buffering": "no",    # disable nginx buffering for SSE
            "Connection":        "keep-alive",
        },
    )


# ---------------------------------------------------------------------------
# SSE serialisation helper
# ---------------------------------------------------------------------------

def _sse_event(event: str, data: str | dict) -> str:
    """
    Serialise a Server-Sent Event.

    Token deltas may contain newlines; each line becomes its own ``data:``
    field so the client reassembles the text exactly.
    """
    if isinstance(data, dict):
        payload = json.dumps(data, ensure_ascii=False)
    else:
        payload = data
    lines = "\n".join(f"data: {line}" for line in payload.split("\n"))
    return f"event: {event}\n{lines}\n\n"
