"""
RAG package — retrieval and prompt assembly for manuscript chat.

Only the dependency-free retriever is re-exported here; the pipeline pulls
in the LLM layer and is imported directly.
"""

from manuscript_chat.rag.retriever import KeywordRetriever

__all__ = [
    "KeywordRetriever",
    # ChatOrchestrator                       — import directly from manuscript_chat.rag.pipeline
    # build_augmented_prompt, CONTEXT_SEPARATOR — import directly from manuscript_chat.rag.prompt_manager
]
