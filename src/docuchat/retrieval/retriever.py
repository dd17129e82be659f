"""Conversation-scoped retrieval with citation tracking.

The query side of the index.  :class:`SemanticRetriever` runs a
conversation-filtered similarity search; :class:`RetrievalEngine` adds the
query-path contract on top (validation, recording the user turn, context
assembly).

Usage::

    engine = RetrievalEngine(retriever, repository)
    retrieved = engine.retrieve("What is the policy?", conversation_id)
    print(retrieved.context)
"""

from __future__ import annotations

import logging
from typing import Any

from docuchat.config import settings
from docuchat.errors import EmbeddingError, NotFoundError, ValidationError
from docuchat.ingestion.embedder import Embedder
from docuchat.retrieval.base import VectorStoreBase
from docuchat.retrieval.models import (
    Citation,
    MetadataFilter,
    RetrievalResult,
    RetrievedContext,
)
from docuchat.store.repository import ChatRepository

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"


class SemanticRetriever:
    """High-level retriever over any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    embedder:
        The embedder used at ingestion time; queries must use the same model.
    collection_name:
        Collection holding every conversation's chunks.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Optional minimum similarity score; results below it are discarded.
    strict_embedding_model:
        Raise :class:`EmbeddingError` instead of warning when a hit was
        embedded with a different model.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: Embedder,
        *,
        collection_name: str = settings.chroma_collection,
        default_k: int = settings.retrieval_k,
        score_threshold: float | None = None,
        strict_embedding_model: bool = settings.strict_embedding_model,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.collection_name = collection_name
        self.default_k = default_k
        self.score_threshold = score_threshold
        self.strict_embedding_model = strict_embedding_model

    # -- public API -----------------------------------------------------------

    def embed(self, query: str) -> list[float]:
        return self._embedder.embed_query(query)

    def search_by_embedding(
        self,
        embedding: list[float],
        conversation_id: str,
        *,
        k: int | None = None,
    ) -> list[RetrievalResult]:
        """Top-*k* chunks of *conversation_id* ranked by descending score.

        The conversation filter is always applied by the backend; hits
        that still carry another conversation id are dropped and logged.
        """
        if not conversation_id:
            raise ValidationError("conversation_id is required")
        k = k or self.default_k
        self._store.ensure_collection(self.collection_name)
        raw_hits = self._store.similarity_search(
            self.collection_name,
            embedding,
            k=k,
            filters=[MetadataFilter.conversation(conversation_id)],
        )
        return self._to_results(raw_hits, conversation_id)

    def search(self, query: str, conversation_id: str, *, k: int | None = None) -> list[RetrievalResult]:
        """Embed *query* and delegate to :meth:`search_by_embedding`."""
        return self.search_by_embedding(self.embed(query), conversation_id, k=k)

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]], conversation_id: str) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            meta = hit.get("metadata", {})
            if meta.get("conversation_id") != conversation_id:
                logger.error(
                    "Dropping hit from another conversation | expected=%s | got=%s | id=%s",
                    conversation_id,
                    meta.get("conversation_id"),
                    hit.get("id"),
                )
                continue

            score = hit.get("score")
            if self.score_threshold is not None and score is not None and score < self.score_threshold:
                continue

            self._check_model(meta)
            citation = Citation(
                document_id=hit.get("id"),
                source=meta.get("source", "unknown"),
                chunk_index=meta.get("chunk_index"),
                page=meta.get("page"),
                score=score,
                metadata=meta,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))

        results.sort(key=lambda r: r.citation.score if r.citation.score is not None else float("-inf"), reverse=True)
        return results

    def _check_model(self, meta: dict[str, Any]) -> None:
        indexed_with = meta.get("embedding_model")
        if indexed_with is None or indexed_with == self._embedder.model_name:
            return
        msg = (
            f"Chunk embedded with {indexed_with!r} but queries use "
            f"{self._embedder.model_name!r}"
        )
        if self.strict_embedding_model:
            raise EmbeddingError(msg)
        logger.warning(msg)


def build_context(results: list[RetrievalResult]) -> str:
    """Join chunk texts in rank order, separated by a paragraph break."""
    return CONTEXT_SEPARATOR.join(r.content for r in results)


class RetrievalEngine:
    """Query-path retrieval: validate, record the user turn, search, assemble."""

    def __init__(self, retriever: SemanticRetriever, repository: ChatRepository) -> None:
        self._retriever = retriever
        self._repository = repository

    def retrieve(self, question: str, conversation_id: str) -> RetrievedContext:
        """Return the context string and ranked sources for *question*.

        The user turn is persisted before any embedding or search so a
        later failure still leaves the question on record.
        """
        if not conversation_id:
            raise ValidationError("conversation_id is required")
        if not question or not question.strip():
            raise ValidationError("question is required")
        if not self._repository.conversation_exists(conversation_id):
            raise NotFoundError(f"Conversation {conversation_id} not found")

        self._repository.add_message(conversation_id, "user", question)
        logger.info("Query state | conversation_id=%s | state=USER_TURN_PERSISTED", conversation_id)

        embedding = self._retriever.embed(question)
        logger.info("Query state | conversation_id=%s | state=QUESTION_EMBEDDED", conversation_id)

        results = self._retriever.search_by_embedding(embedding, conversation_id)
        logger.info(
            "Query state | conversation_id=%s | state=RETRIEVED | hits=%d",
            conversation_id,
            len(results),
        )
        return RetrievedContext(context=build_context(results), sources=results)
