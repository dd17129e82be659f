"""
Retrieval: conversation-scoped vector search and context assembly.

Every search is pinned to a single conversation; nothing above this
package sees a query without that filter.

Public surface
--------------
- :class:`RetrievalEngine`: ``retrieve(question, conversation_id)``.
- :class:`SemanticRetriever`: hard-filtered search with citations.
- :class:`VectorStoreBase`: abstract backend (subclass for Qdrant, etc.).
- :class:`ChromaVectorStore`: default Chroma backend.
- :class:`Chunk`, :class:`Citation`, :class:`RetrievalResult`,
  :class:`RetrievedContext`, :class:`MetadataFilter`: data models.
"""

from docuchat.retrieval.base import VectorStoreBase
from docuchat.retrieval.models import (
    Chunk,
    Citation,
    MetadataFilter,
    RetrievalResult,
    RetrievedContext,
)
from docuchat.retrieval.retriever import RetrievalEngine, SemanticRetriever, build_context

__all__ = [
    "ChromaVectorStore",
    "Chunk",
    "Citation",
    "MetadataFilter",
    "RetrievalEngine",
    "RetrievalResult",
    "RetrievedContext",
    "SemanticRetriever",
    "VectorStoreBase",
    "build_context",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from docuchat.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
