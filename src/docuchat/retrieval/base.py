"""Vector index interface shared by ingestion (writes) and retrieval (reads).

Backends implement the abstract methods; collection bootstrap lives here.
:meth:`VectorStoreBase.ensure_collection` is idempotent and serialised per
collection name, so any number of workers may race on the first upload
and exactly one of them creates the collection.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

from docuchat.retrieval.models import Chunk, MetadataFilter


class VectorStoreBase(ABC):
    def __init__(self) -> None:
        self._ready: set[str] = set()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def ensure_collection(self, collection_name: str) -> None:
        """Create *collection_name* once per process; later calls return immediately."""
        if collection_name in self._ready:
            return
        with self._lock_for(collection_name):
            if collection_name not in self._ready:
                self._create_collection(collection_name)
                self._ready.add(collection_name)

    def _lock_for(self, collection_name: str) -> threading.Lock:
        with self._locks_guard:
            if collection_name not in self._locks:
                self._locks[collection_name] = threading.Lock()
            return self._locks[collection_name]

    @abstractmethod
    def _create_collection(self, collection_name: str) -> None:
        """Open or create the collection; an existing one is not an error."""

    @abstractmethod
    def upsert(self, collection_name: str, chunks: list[Chunk]) -> None:
        """Write *chunks*, replacing any chunk with the same id."""

    @abstractmethod
    def similarity_search(
        self,
        collection_name: str,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        """Top-*k* hits among chunks matching *filters*, best first.

        Hits are dicts with ``id``, ``content``, ``score`` (higher is
        closer) and ``metadata``.  Filtering happens inside the index
        before ranking, so a scoped search never comes back short because
        other conversations' chunks scored higher.
        """

    @abstractmethod
    def delete_where(self, collection_name: str, filters: list[MetadataFilter]) -> None:
        """Remove every chunk matching *filters*."""

    @abstractmethod
    def health_check(self) -> bool: ...

    def close(self) -> None:
        """Release client resources; nothing to do by default."""
