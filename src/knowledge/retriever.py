"""Pinecone-backed knowledge base used to enrich step prompts.

Retrieval is enrichment only: any failure is logged and yields no
snippets, so a missing or broken index never fails a step.
"""
from typing import Any, Optional, Protocol

import structlog
from pydantic import BaseModel

from src.integrations.pinecone import PineconeClient

logger = structlog.get_logger()


class Embeddings(Protocol):
    """The subset of LangChain's Embeddings interface used here."""

    async def aembed_query(self, text: str) -> list[float]: ...

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]: ...


class KnowledgeDocument(BaseModel):
    id: str
    title: str
    category: str
    content: str


class KnowledgeSnippet(BaseModel):
    id: str
    title: str = ""
    category: str = ""
    content: str
    score: float = 0.0


class KnowledgeBase:
    """Product-management best practices stored as vectors in Pinecone."""

    def __init__(
        self,
        pinecone: PineconeClient,
        embeddings: Embeddings,
        top_k: int = 3,
        namespace: Optional[str] = None,
    ):
        self.pinecone = pinecone
        self.embeddings = embeddings
        self.top_k = top_k
        self.namespace = namespace

    async def search(self, query: str, top_k: Optional[int] = None) -> list[KnowledgeSnippet]:
        """Return the snippets closest to ``query``; empty on any failure."""
        if not query.strip():
            return []
        try:
            vector = await self.embeddings.aembed_query(query)
            response = await self.pinecone.query(
                vector, top_k=top_k or self.top_k, namespace=self.namespace
            )
            matches = response.unwrap()
        except Exception as e:
            logger.warning("knowledge_search_failed", error=str(e))
            return []

        snippets = [self._to_snippet(match) for match in matches]
        snippets = [s for s in snippets if s.content]
        logger.debug("knowledge_search_completed", query=query[:80], hits=len(snippets))
        return snippets

    def _to_snippet(self, match: dict[str, Any]) -> KnowledgeSnippet:
        metadata = match.get("metadata") or {}
        return KnowledgeSnippet(
            id=str(match.get("id", "")),
            title=metadata.get("title", ""),
            category=metadata.get("category", ""),
            content=metadata.get("content") or metadata.get("text") or "",
            score=float(match.get("score") or 0.0),
        )

    async def index_documents(self, documents: list[KnowledgeDocument]) -> int:
        """Embed and upsert documents; returns how many were written.

        Raises:
            VendorAPIError: Pinecone rejected the upsert.
        """
        if not documents:
            return 0
        vectors = await self.embeddings.aembed_documents([doc.content for doc in documents])
        payload = [
            {"id": doc.id, "values": values, "metadata": doc.model_dump()}
            for doc, values in zip(documents, vectors)
        ]
        response = await self.pinecone.upsert(payload, namespace=self.namespace)
        response.unwrap()
        logger.info("knowledge_documents_indexed", count=len(payload))
        return len(payload)


def format_snippets(snippets: list[KnowledgeSnippet]) -> str:
    """Render snippets as a prompt section."""
    if not snippets:
        return ""
    lines = ["Relevant product management knowledge:"]
    for snippet in snippets:
        title = f"{snippet.title}: " if snippet.title else ""
        lines.append(f"- {title}{snippet.content.strip()}")
    return "\n".join(lines)


DEFAULT_DOCUMENTS = [
    KnowledgeDocument(
        id="user-persona-template",
        title="User Persona Template",
        category="user-personas",
        content=(
            "A useful persona names the user, their role and demographics, the goals "
            "they are trying to reach, the pain points that block them today and the "
            "context in which they would use the product."
        ),
    ),
    KnowledgeDocument(
        id="rice-prioritization",
        title="RICE Prioritization",
        category="prioritization",
        content=(
            "Score features by Reach, Impact, Confidence and Effort: "
            "(Reach x Impact x Confidence) / Effort. Ship high scores first."
        ),
    ),
    KnowledgeDocument(
        id="mvp-strategy",
        title="MVP Strategy",
        category="mvp-strategy",
        content=(
            "An MVP covers the smallest set of user stories that lets the primary "
            "persona complete the core job end to end. Defer polish and secondary flows."
        ),
    ),
    KnowledgeDocument(
        id="agile-methodology",
        title="Agile Sprint Planning",
        category="methodology",
        content=(
            "Plan sprints against measured velocity, keep a buffer of about 20 percent, "
            "and size stories on the Fibonacci scale so that no story exceeds 13 points."
        ),
    ),
]
