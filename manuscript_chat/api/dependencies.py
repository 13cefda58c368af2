"""
FastAPI dependencies.

The process holds one default ManuscriptService (one resident manuscript).
Tests replace it with ``app.dependency_overrides[get_manuscript_service]``.
"""

from __future__ import annotations

from manuscript_chat.services.manuscript import ManuscriptService

_service: ManuscriptService | None = None


def get_manuscript_service() -> ManuscriptService:
    """Lazily initialise the process-wide ManuscriptService."""
    global _service
    if _service is None:
        _service = ManuscriptService()
    return _service
