"""Knowledge retrieval for prompt enrichment."""

from src.knowledge.retriever import (
    DEFAULT_DOCUMENTS,
    Embeddings,
    KnowledgeBase,
    KnowledgeDocument,
    KnowledgeSnippet,
    format_snippets,
)

__all__ = [
    "DEFAULT_DOCUMENTS",
    "Embeddings",
    "KnowledgeBase",
    "KnowledgeDocument",
    "KnowledgeSnippet",
    "format_snippets",
]
