"""
Document Processing Package
════════════════════════════

  PDF payload → text layer + page images → extraction completion → chunks

Modules
───────
  pdf.py        PyMuPDF reader: page count, text layer, page rasterisation
  chunking.py   Fixed-window overlapping chunker
  extractor.py  Extraction orchestrator that populates a ManuscriptSession
                (import directly; it depends on the LLM and RAG layers)
"""

from manuscript_chat.processing.chunking import DocumentChunk, FixedWindowChunker
from manuscript_chat.processing.pdf import PyMuPDFReader, decode_pdf_payload

__all__ = [
    "DocumentChunk",
    "FixedWindowChunker",
    "PyMuPDFReader",
    "decode_pdf_payload",
]
