"""Unit tests for the vector-store base class and the Chroma backend."""

from __future__ import annotations

import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from docuchat.retrieval.models import Chunk, MetadataFilter
from fakes import InMemoryVectorStore


class SlowCreateStore(InMemoryVectorStore):
    """Widens the race window of collection creation."""

    def __init__(self) -> None:
        super().__init__()
        self.concurrent = 0
        self.max_concurrent = 0
        self._count_lock = threading.Lock()

    def _create_collection(self, collection_name: str) -> None:
        with self._count_lock:
            self.concurrent += 1
            self.max_concurrent = max(self.max_concurrent, self.concurrent)
        time.sleep(0.05)
        super()._create_collection(collection_name)
        with self._count_lock:
            self.concurrent -= 1


class TestEnsureCollection:
    def test_concurrent_first_writers_create_once(self) -> None:
        store = SlowCreateStore()
        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(lambda _: store.ensure_collection("fresh"), range(32)))
        assert store.create_calls == 1
        assert store.max_concurrent == 1

    def test_distinct_collections_each_created(self) -> None:
        store = InMemoryVectorStore()
        store.ensure_collection("a")
        store.ensure_collection("b")
        store.ensure_collection("a")
        assert store.create_calls == 2

    def test_duplicate_upserts_are_safe(self) -> None:
        store = InMemoryVectorStore()
        store.ensure_collection("c")
        chunk = Chunk(id="same", text="t", embedding=[1.0, 0.0], metadata={"conversation_id": "x"})
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: store.upsert("c", [chunk]), range(20)))
        assert len(store.chunks("c")) == 1


# ── Chroma where-clause helpers ─────────────────────────────────────────


class TestWhereClause:
    @pytest.fixture(autouse=True)
    def _needs_chromadb(self) -> None:
        pytest.importorskip("chromadb")

    def test_single_filter(self) -> None:
        from docuchat.retrieval.chroma_store import where_clause

        assert where_clause([MetadataFilter.conversation("abc")]) == {"conversation_id": {"$eq": "abc"}}

    def test_multiple_filters_are_anded(self) -> None:
        from docuchat.retrieval.chroma_store import where_clause

        where = where_clause([MetadataFilter.conversation("abc"), MetadataFilter.one_of("source", ["a.pdf"])])
        assert where == {"$and": [{"conversation_id": {"$eq": "abc"}}, {"source": {"$in": ["a.pdf"]}}]}

    def test_none_when_empty(self) -> None:
        from docuchat.retrieval.chroma_store import where_clause

        assert where_clause([]) is None
        assert where_clause(None) is None

    def test_scalar_metadata_drops_nested_values(self) -> None:
        from docuchat.retrieval.chroma_store import scalar_metadata

        flat = scalar_metadata({"a": 1, "b": "x", "c": None, "d": {"nested": True}, "e": [1]})
        assert flat == {"a": 1, "b": "x"}


class TestChromaVectorStore:
    """Runs against an in-process ephemeral Chroma client."""

    @pytest.fixture()
    def store(self):
        chromadb = pytest.importorskip("chromadb")
        from docuchat.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore(client=chromadb.EphemeralClient())

    @pytest.fixture()
    def collection(self) -> str:
        return f"test-{uuid.uuid4().hex[:8]}"

    def _chunk(self, cid: str, conversation_id: str, vector: list[float]) -> Chunk:
        return Chunk(id=cid, text=f"text {cid}", embedding=vector, metadata={"conversation_id": conversation_id})

    def test_filtered_search_is_scoped(self, store, collection: str) -> None:
        store.ensure_collection(collection)
        store.upsert(
            collection,
            [
                self._chunk("a1", "A", [1.0, 0.0, 0.0]),
                self._chunk("a2", "A", [0.9, 0.1, 0.0]),
                self._chunk("b1", "B", [1.0, 0.0, 0.0]),
            ],
        )
        hits = store.similarity_search(collection, [1.0, 0.0, 0.0], k=2, filters=[MetadataFilter.conversation("B")])
        assert [h["id"] for h in hits] == ["b1"]
        assert hits[0]["score"] == pytest.approx(1.0, abs=1e-4)

    def test_results_ranked_and_upsert_idempotent(self, store, collection: str) -> None:
        store.ensure_collection(collection)
        chunks = [self._chunk("a1", "A", [0.0, 1.0, 0.0]), self._chunk("a2", "A", [1.0, 0.0, 0.0])]
        store.upsert(collection, chunks)
        store.upsert(collection, chunks)
        hits = store.similarity_search(collection, [1.0, 0.0, 0.0], k=5, filters=[MetadataFilter.conversation("A")])
        assert [h["id"] for h in hits] == ["a2", "a1"]

    def test_delete_where_removes_only_matching(self, store, collection: str) -> None:
        store.ensure_collection(collection)
        store.upsert(collection, [self._chunk("a1", "A", [1.0, 0.0]), self._chunk("b1", "B", [1.0, 0.0])])
        store.delete_where(collection, [MetadataFilter.conversation("A")])
        assert store.similarity_search(collection, [1.0, 0.0], k=5, filters=[MetadataFilter.conversation("A")]) == []
        assert len(store.similarity_search(collection, [1.0, 0.0], k=5, filters=[MetadataFilter.conversation("B")])) == 1
