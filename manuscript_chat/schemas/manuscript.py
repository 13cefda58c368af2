"""
Manuscript — Pydantic Models and Request/Response Schemas

Covers:
  - The structured extraction output (axioms, snippets, metadata) as the
    model is asked to return it
  - Request bodies for the extraction and chat endpoints
  - Response bodies and the uniform error envelope

Design decisions:
  - Model output is validated leniently: unknown keys are ignored and every
    field has a default, because the completion API is not trusted to follow
    the schema exactly. Only a non-object or type-incompatible payload fails.
  - ManuscriptMetadata.chapters carries both the model's chapter outline and
    the structural map (wrapped in marker strings) so a single metadata
    object describes the manuscript to every prompt.
"""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Structural map markers
# ---------------------------------------------------------------------------

STRUCTURAL_MAP_START: Final[str] = "[[STRUCTURAL MAP START]]"
STRUCTURAL_MAP_END:   Final[str] = "[[STRUCTURAL MAP END]]"


# ---------------------------------------------------------------------------
# Domain models
# ---------------------------------------------------------------------------

class Axiom(BaseModel):
    """A (term, definition, significance) triple extracted from the manuscript."""
    model_config = ConfigDict(extra="ignore")

    term:         str = ""
    definition:   str = ""
    significance: str = ""


class ManuscriptMetadata(BaseModel):
    """Bibliographic and structural description of the active manuscript."""
    model_config = ConfigDict(extra="ignore")

    title:    str | None = None
    author:   str | None = None
    chapters: str | None = None
    summary:  str | None = None

    @field_validator("title", "author", "chapters", "summary", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        # Models sometimes return the chapter list as an array
        if isinstance(value, list):
            return "\n".join(str(v) for v in value)
        return value

    @property
    def structural_map(self) -> str:
        """The marked structural-map block embedded in ``chapters``, or ``""``."""
        if not self.chapters:
            return ""
        start = self.chapters.find(STRUCTURAL_MAP_START)
        end   = self.chapters.find(STRUCTURAL_MAP_END, start)
        if start == -1 or end == -1:
            return ""
        return self.chapters[start:end + len(STRUCTURAL_MAP_END)]

    @property
    def chapter_outline(self) -> str:
        """The model-reported chapter description without the structural map."""
        if not self.chapters:
            return ""
        start = self.chapters.find(STRUCTURAL_MAP_START)
        outline = self.chapters if start == -1 else self.chapters[:start]
        return outline.strip()

    def with_structural_map(self, structural_map: str) -> "ManuscriptMetadata":
        """Return a copy whose ``chapters`` embeds ``structural_map``."""
        outline = self.chapter_outline
        chapters = f"{outline}\n\n{structural_map}" if outline else structural_map
        return self.model_copy(update={"chapters": chapters})


class ExtractionPayload(BaseModel):
    """The JSON object the extraction completion is asked to produce."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    axioms:    list[Axiom]        = Field(default_factory=list)
    snippets:  list[str]          = Field(default_factory=list)
    metadata:  ManuscriptMetadata = Field(default_factory=ManuscriptMetadata)
    full_text: str                = Field("", alias="fullText")

    @field_validator("axioms", "snippets", "metadata", "full_text", mode="before")
    @classmethod
    def _null_to_default(cls, value, info):
        if value is not None:
            return value
        return {"axioms": [], "snippets": [], "metadata": {}, "full_text": ""}[info.field_name]


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class ExtractRequest(BaseModel):
    """POST /api/v1/manuscript/extract"""
    pdf_base64: str = Field(..., min_length=1, description="Base64 PDF (data URL prefix allowed)")
    language:   str = Field("en", min_length=2, max_length=8, description="Target response language")


class ChatRequest(BaseModel):
    """POST /api/v1/chat/stream"""
    prompt:   str = Field(
        ...,
        min_length=1,
        max_length=4_000,
        description="The user's question about the manuscript.",
        examples=["What does the author mean by 'structural silence'?"],
    )
    language: str = Field("en", min_length=2, max_length=8)


# ---------------------------------------------------------------------------
# Response bodies
# ---------------------------------------------------------------------------

class ExtractResponse(BaseModel):
    axioms:        list[Axiom]
    snippet_count: int
    chunk_count:   int
    metadata:      ManuscriptMetadata


class SnippetsResponse(BaseModel):
    snippets: list[str]


class ManuscriptSummary(BaseModel):
    """GET /api/v1/manuscript — what is currently loaded."""
    title:              str | None
    author:             str | None
    summary:            str | None
    chunk_count:        int
    has_structural_map: bool
    generation:         int


# ---------------------------------------------------------------------------
# Structured error bodies
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single structured error — may appear in a list."""
    field:   str | None = Field(None, description="Request field that caused the error, if applicable")
    message: str
    code:    str         = Field(..., description="Machine-readable error code for client handling")


class ErrorResponse(BaseModel):
    """
    Uniform error envelope for all 4xx/5xx responses.
    Clients should check `error_code` for programmatic handling.
    """
    error_code: str               = Field(..., description="Stable machine-readable code")
    message:    str               = Field(..., description="Human-readable summary")
    details:    list[ErrorDetail] = Field(default_factory=list)
    request_id: str | None        = Field(None, description="Trace ID for log correlation")
