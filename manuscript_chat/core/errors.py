"""
Error taxonomy for the manuscript pipeline.

Every error carries a stable machine-readable ``error_code`` and the HTTP
status the API layer should answer with. Only ExtractionError is ever
recovered inside the core (text-layer failure → empty transcript); all the
others propagate to the caller unchanged. Nothing here is retried.
"""

from __future__ import annotations


class ManuscriptError(Exception):
    """Base class — never raised directly."""

    error_code:  str = "MANUSCRIPT_ERROR"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ManuscriptError):
    """Missing or placeholder API credential. Raised before any network call."""

    error_code  = "CONFIGURATION_ERROR"
    status_code = 500


class DecodeError(ManuscriptError):
    """Malformed base64 payload or a byte stream that is not a readable PDF."""

    error_code  = "DECODE_ERROR"
    status_code = 400


class ExtractionError(ManuscriptError):
    """Text-layer extraction failed. Recovered locally as an empty transcript."""

    error_code  = "EXTRACTION_ERROR"
    status_code = 500


class UpstreamError(ManuscriptError):
    """The LLM provider rejected or failed the request."""

    error_code  = "UPSTREAM_ERROR"
    status_code = 502


class ParseError(ManuscriptError):
    """Model output did not contain a locatable, valid JSON object."""

    error_code  = "PARSE_ERROR"
    status_code = 502


class StreamError(ManuscriptError):
    """The completion stream broke after output had started arriving."""

    error_code  = "STREAM_ERROR"
    status_code = 502
