"""Chroma backend: one cosine-space collection, conversation scoping via ``where``."""

from __future__ import annotations

import logging
from typing import Any

import chromadb

from docuchat.config import settings
from docuchat.errors import VectorIndexError
from docuchat.retrieval.base import VectorStoreBase
from docuchat.retrieval.models import Chunk, MetadataFilter

logger = logging.getLogger(__name__)

_SCALAR = (str, int, float, bool)


def where_clause(filters: list[MetadataFilter] | None) -> dict[str, Any] | None:
    """Translate filters into a Chroma ``where`` document (``None`` for no filters)."""
    clauses = [{f.field: {f"${f.operator}": f.value}} for f in filters or []]
    if not clauses:
        return None
    return clauses[0] if len(clauses) == 1 else {"$and": clauses}


def scalar_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Keep only values Chroma can store (no ``None``, lists or dicts)."""
    return {key: value for key, value in metadata.items() if isinstance(value, _SCALAR)}


def _first_row(results: dict[str, Any], key: str) -> list[Any]:
    rows = results.get(key) or [[]]
    return rows[0] or []


class ChromaVectorStore(VectorStoreBase):
    """Talks to a Chroma server over HTTP, or to any client passed in.

    Every client error is re-raised as :class:`VectorIndexError` naming the
    collection and the call that failed.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
    ) -> None:
        super().__init__()
        self._client = client or chromadb.HttpClient(host=host, port=port)
        self._handles: dict[str, Any] = {}

    def _create_collection(self, collection_name: str) -> None:
        self._handles[collection_name] = self._call(
            collection_name,
            "open",
            lambda: self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            ),
        )
        logger.info("Collection ready | collection=%s", collection_name)

    def _handle(self, collection_name: str) -> Any:
        self.ensure_collection(collection_name)
        return self._handles[collection_name]

    @staticmethod
    def _call(collection_name: str, action: str, fn: Any) -> Any:
        try:
            return fn()
        except Exception as exc:
            raise VectorIndexError(f"Chroma {action} failed | collection={collection_name} | {exc}") from exc

    def upsert(self, collection_name: str, chunks: list[Chunk]) -> None:
        if not chunks:
            return
        handle = self._handle(collection_name)
        self._call(
            collection_name,
            "upsert",
            lambda: handle.upsert(
                ids=[c.id for c in chunks],
                embeddings=[c.embedding for c in chunks],
                documents=[c.text for c in chunks],
                metadatas=[scalar_metadata(c.metadata) for c in chunks],
            ),
        )
        logger.debug("Upserted chunks | collection=%s | count=%d", collection_name, len(chunks))

    def similarity_search(
        self,
        collection_name: str,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        handle = self._handle(collection_name)
        results = self._call(
            collection_name,
            "query",
            lambda: handle.query(
                query_embeddings=[query_embedding],
                n_results=k,
                where=where_clause(filters),
                include=["documents", "metadatas", "distances"],
            ),
        )
        rows = zip(
            _first_row(results, "ids"),
            _first_row(results, "documents"),
            _first_row(results, "metadatas"),
            _first_row(results, "distances"),
        )
        # cosine distance is 1 - similarity
        hits = [
            {"id": cid, "content": text or "", "score": 1.0 - distance, "metadata": meta or {}}
            for cid, text, meta, distance in rows
        ]
        return sorted(hits, key=lambda hit: hit["score"], reverse=True)

    def delete_where(self, collection_name: str, filters: list[MetadataFilter]) -> None:
        where = where_clause(filters)
        if where is None:
            raise ValueError("delete_where needs at least one filter")
        handle = self._handle(collection_name)
        self._call(collection_name, "delete", lambda: handle.delete(where=where))
        logger.info("Deleted chunks | collection=%s | where=%s", collection_name, where)

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
        except Exception:
            logger.warning("Chroma heartbeat failed", exc_info=True)
            return False
        return True
