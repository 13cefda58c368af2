"""
Prompt Manager — every prompt the service sends, in one place.

Responsibilities:
  1. Render the system instruction (identity, operating protocol, the
     current manuscript's title/author/outline, response language).
  2. Render the extraction request: output-schema instruction, a bounded
     transcript preview, and the rendered page images as one multimodal
     user message.
  3. Build the structural map: a bounded leading excerpt of the full text,
     wrapped in marker strings, that rides along with every chat turn.
  4. Assemble the per-turn augmented prompt from one of two templates:

       grounded         structural map + retrieved chunks + question
                        + synthesis / verbatim-quote instructions
       structure-only   structural map + question
                        + answer-from-structure-or-ask instruction

The system instruction carries title, author and chapter outline only; the
structural map goes into each turn's user prompt.
"""

from __future__ import annotations

import logging
from typing import Final, Sequence

from langchain_core.messages import HumanMessage, SystemMessage

from manuscript_chat.processing.chunking import DocumentChunk
from manuscript_chat.schemas.manuscript import (
    STRUCTURAL_MAP_END,
    STRUCTURAL_MAP_START,
    ManuscriptMetadata,
)

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR: Final[str] = "\n\n---\n\n"

PREVIEW_TRUNCATION_MARKER: Final[str] = "\n\n[... TRANSCRIPT TRUNCATED ...]"

LANGUAGE_NAMES: Final[dict[str, str]] = {
    "en": "English",
    "ar": "Arabic",
    "fr": "French",
    "es": "Spanish",
    "de": "German",
}

EXTRACTION_AXIOM_COUNT:  Final[int] = 13
EXTRACTION_SNIPPET_COUNT: Final[int] = 10


def language_name(language: str | None) -> str:
    if not language:
        return "the user's language"
    return LANGUAGE_NAMES.get(language.lower().split("-")[0], language)


# ---------------------------------------------------------------------------
# System instruction
# ---------------------------------------------------------------------------

_SYSTEM_TEMPLATE: Final[str] = """\
You are an Elite Intellectual Researcher, the primary consciousness of the Knowledge AI infrastructure.
IDENTITY: You are developed exclusively by the Knowledge AI team. Never mention third-party model vendors or the underlying model.
{manuscript_block}
MANDATORY OPERATIONAL PROTOCOL:
1. YOUR SOURCE OF TRUTH: You MUST prioritize the provided manuscript and its excerpts above all else.
2. AUTHOR STYLE MIRRORING: Adopt the exact linguistic style, tone and intellectual depth of the author. If the author is philosophical, be philosophical. If academic, be academic.
3. ACCURACY & QUOTES: Support every claim with a direct, verbatim quote from the manuscript, formatted as: "Quote from text" (Source/Context).
4. NO GENERALIZATIONS: Do not give generic answers. Scan the provided context thoroughly for specific details.

RESPONSE ARCHITECTURE:
- Use Markdown: ### for headers, **bold** for key terms, and LaTeX for formulas.
- Respond in the SAME language as the user's question. Interface language: {language_name}.
- Respond directly. No introductions or meta-talk.
- Elaborate: give comprehensive, in-depth answers while keeping the author's style.

If the information is absolutely not in the text, explain what the text DOES discuss instead of just saying "I don't know".
"""

_MANUSCRIPT_BLOCK_TEMPLATE: Final[str] = """\
CURRENT MANUSCRIPT CONTEXT:
- Title: {title}
- Author: {author}
- Structure: {outline}
"""


def build_system_instruction(metadata: ManuscriptMetadata | None, language: str | None) -> str:
    """Render the system message. Metadata is embedded only once a title is known."""
    manuscript_block = ""
    if metadata is not None and metadata.title:
        manuscript_block = _MANUSCRIPT_BLOCK_TEMPLATE.format(
            title=metadata.title,
            author=metadata.author or "Unknown",
            outline=metadata.chapter_outline or "Not identified",
        )
    return _SYSTEM_TEMPLATE.format(
        manuscript_block=manuscript_block,
        language_name=language_name(language),
    )


# ---------------------------------------------------------------------------
# Extraction request
# ---------------------------------------------------------------------------

_EXTRACTION_SCHEMA: Final[str] = """\
RETURN ONLY JSON matching this structure:
{
  "axioms": [ { "term": "string", "definition": "string", "significance": "string" } ],
  "snippets": [ "string" ],
  "metadata": { "title": "string", "author": "string", "chapters": "string" },
  "fullText": "string"
}
"""

_EXTRACTION_TEMPLATE: Final[str] = """\
1. Extract exactly {axiom_count} high-quality 'Knowledge Axioms' from this manuscript.
2. Extract {snippet_count} short, profound and useful snippets or quotes DIRECTLY from the text (verbatim).
3. {full_text_instruction}
4. Identify the Title, Author, and a brief list of Chapters/Structure.

IMPORTANT: The 'axioms', 'snippets' and 'metadata' MUST be in the SAME LANGUAGE as the manuscript itself.
{schema}
MANUSCRIPT TRANSCRIPT (text layer):
{preview}
"""

_FULL_TEXT_ECHO: Final[str] = (
    "The text layer below is missing or very short: transcribe the FULL TEXT "
    "visible on the page images into 'fullText'."
)
_FULL_TEXT_SKIP: Final[str] = (
    "The full text is already available: set 'fullText' to an empty string."
)


def build_transcript_preview(transcript: str, limit: int) -> str:
    """
    Bound the transcript inlined into the extraction prompt.

    Text of ``limit`` characters or more is cut to its first ``limit``
    characters and the truncation marker is appended; shorter text is
    returned unchanged.
    """
    if len(transcript) < limit:
        return transcript
    return transcript[:limit] + PREVIEW_TRUNCATION_MARKER


def build_extraction_messages(
    metadata:        ManuscriptMetadata | None,
    language:        str | None,
    preview:         str,
    page_images:     Sequence[str],
    request_full_text: bool,
) -> list[SystemMessage | HumanMessage]:
    """System instruction + one multimodal user message (text part, then images)."""
    text = _EXTRACTION_TEMPLATE.format(
        axiom_count=EXTRACTION_AXIOM_COUNT,
        snippet_count=EXTRACTION_SNIPPET_COUNT,
        full_text_instruction=_FULL_TEXT_ECHO if request_full_text else _FULL_TEXT_SKIP,
        schema=_EXTRACTION_SCHEMA,
        preview=preview or "(no text layer available)",
    )
    content: list[dict] = [{"type": "text", "text": text}]
    content.extend({"type": "image_url", "image_url": {"url": url}} for url in page_images)

    return [
        SystemMessage(content=build_system_instruction(metadata, language)),
        HumanMessage(content=content),
    ]


# ---------------------------------------------------------------------------
# Structural map
# ---------------------------------------------------------------------------

def build_structural_map(full_text: str, limit: int) -> str:
    """Leading ``limit`` characters of the manuscript between the map markers."""
    return f"{STRUCTURAL_MAP_START}\n{full_text[:limit]}\n{STRUCTURAL_MAP_END}"


# ---------------------------------------------------------------------------
# Per-turn augmented prompt
# ---------------------------------------------------------------------------

_GROUNDED_TEMPLATE: Final[str] = """\
MANUSCRIPT STRUCTURE (opening pages, table of contents, introduction):
{structural_map}

CRITICAL CONTEXT FROM MANUSCRIPT:
{context}

USER QUESTION:
{question}

INSTRUCTIONS:
1. Answer based on the structure and the excerpts above.
2. Synthesise comprehensively across ALL excerpts; do not stop at the first relevant one.
3. Support every point with direct, verbatim quotes from the excerpts.
4. Adopt the author's style and intellectual register.
"""

_STRUCTURE_ONLY_TEMPLATE: Final[str] = """\
MANUSCRIPT STRUCTURE (opening pages, table of contents, introduction):
{structural_map}

USER QUESTION:
{question}

INSTRUCTION: No specific excerpt matched this question. Answer from the manuscript structure above if it is sufficient; otherwise say that more specific context is needed and describe what the manuscript does cover. Adopt the author's style.
"""


def format_context(chunks: Sequence[DocumentChunk]) -> str:
    return CONTEXT_SEPARATOR.join(c.text for c in chunks)


def build_augmented_prompt(
    question: str,
    chunks:   Sequence[DocumentChunk],
    metadata: ManuscriptMetadata | None,
) -> str:
    """
    Grounded template when ``chunks`` is non-empty, structure-only otherwise.
    The question is embedded verbatim in both.
    """
    structural_map = (metadata.structural_map if metadata else "") or "(no manuscript structure available)"

    if chunks:
        prompt = _GROUNDED_TEMPLATE.format(
            structural_map=structural_map,
            context=format_context(chunks),
            question=question,
        )
    else:
        prompt = _STRUCTURE_ONLY_TEMPLATE.format(
            structural_map=structural_map,
            question=question,
        )

    logger.debug(
        "PromptManager | augmented prompt template=%s chunks=%d chars=%d",
        "grounded" if chunks else "structure_only", len(chunks), len(prompt),
    )
    return prompt
