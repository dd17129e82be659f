"""Per-job ingestion: load → tag → chunk → embed → ensure collection → upsert.

Each job is all-or-nothing.  Every step that can fail runs before the
first index write, and the single upsert is keyed by deterministic chunk
ids, so a redelivered job overwrites its own chunks instead of adding a
second copy.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from docuchat.config import settings
from docuchat.errors import DocuChatError, EmbeddingError, LoadError, VectorIndexError
from docuchat.ingestion.chunker import chunk_documents
from docuchat.ingestion.loader import load_document
from docuchat.retrieval.models import CONVERSATION_KEY, Chunk

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from docuchat.ingestion.embedder import Embedder
    from docuchat.jobs.models import IngestionJob
    from docuchat.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

INGESTED = "ingested"
DROPPED = "dropped"
FAILED = "failed"


@dataclass
class IngestionResult:
    """Terminal outcome of one job.

    Attributes
    ----------
    status:
        ``"ingested"``, ``"dropped"`` (malformed or empty input) or
        ``"failed"`` (load / embedding / index error).
    conversation_id:
        Owning conversation, when the job named one.
    filename:
        Original filename from the job.
    chunks:
        Number of chunks written (0 unless ingested).
    error:
        Human-readable reason for a dropped or failed job.
    """

    status: str
    conversation_id: str | None = None
    filename: str = ""
    chunks: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == INGESTED


def chunk_id(conversation_id: str, filename: str, page: object, index: int, text: str) -> str:
    """Deterministic id so re-ingesting the same document upserts in place."""
    key = "\x1f".join([conversation_id, filename, str(page), str(index), text])
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]


def tag_documents(documents: list[Document], conversation_id: str, filename: str) -> list[Document]:
    """Replace loader metadata with the routing fields chunks carry.

    Loader metadata holds the server-side path of the upload; it is not
    kept, since chunk metadata is returned to clients with every answer.
    """
    for doc in documents:
        doc.metadata = {
            CONVERSATION_KEY: conversation_id,
            "source": filename,
            "page": doc.metadata.get("page", 0),
        }
    return documents


class IngestionPipeline:
    """Turns one :class:`IngestionJob` into indexed chunks.

    Parameters
    ----------
    embedder:
        Shared with the retrieval side so both use the same model.
    store:
        Vector index; must tolerate concurrent upserts.
    collection_name:
        Collection holding every conversation's chunks.
    loader:
        ``path -> list[Document]``; defaults to :func:`load_document`.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStoreBase,
        *,
        collection_name: str = settings.chroma_collection,
        chunk_size: int = settings.chunk_size,
        chunk_overlap: int = settings.chunk_overlap,
        loader: Callable[[str | Path], list[Document]] = load_document,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self.collection_name = collection_name
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._loader = loader

    def consume(self, job: IngestionJob) -> IngestionResult:
        """Run one job to a terminal :class:`IngestionResult`.  Never raises domain errors."""
        conversation_id = job.conversation_id
        filename = job.filename or Path(job.path.replace("\\", "/")).name

        if not conversation_id:
            logger.error("conversation_id missing in job, dropping | filename=%s", filename)
            return IngestionResult(DROPPED, filename=filename, error="conversation_id missing")

        t0 = time.monotonic()
        try:
            chunks = self._build_chunks(job.path, conversation_id, filename)
            if not chunks:
                logger.warning(
                    "No text extracted, nothing to index | conversation_id=%s | filename=%s",
                    conversation_id,
                    filename,
                )
                return IngestionResult(DROPPED, conversation_id, filename, error="no text extracted")

            self._store.ensure_collection(self.collection_name)
            self._store.upsert(self.collection_name, chunks)
        except (LoadError, EmbeddingError, VectorIndexError) as exc:
            logger.error(
                "Ingestion failed | conversation_id=%s | filename=%s | %s: %s",
                conversation_id,
                filename,
                type(exc).__name__,
                exc.message,
            )
            return IngestionResult(FAILED, conversation_id, filename, error=exc.message)
        except DocuChatError as exc:
            logger.exception("Unexpected ingestion error | conversation_id=%s", conversation_id)
            return IngestionResult(FAILED, conversation_id, filename, error=exc.message)

        logger.info(
            "Docs indexed | conversation_id=%s | filename=%s | chunks=%d | %.2fs",
            conversation_id,
            filename,
            len(chunks),
            time.monotonic() - t0,
        )
        return IngestionResult(INGESTED, conversation_id, filename, chunks=len(chunks))

    def _build_chunks(self, path: str, conversation_id: str, filename: str) -> list[Chunk]:
        pages = self._loader(path)
        logger.info("Loaded docs | filename=%s | pages=%d", filename, len(pages))

        pieces = chunk_documents(
            tag_documents(pages, conversation_id, filename),
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )
        if not pieces:
            return []

        vectors = self._embedder.embed_documents([p.page_content for p in pieces])
        chunks: list[Chunk] = []
        for piece, vector in zip(pieces, vectors):
            meta = dict(piece.metadata)
            meta["embedding_model"] = self._embedder.model_name
            chunks.append(
                Chunk(
                    id=chunk_id(conversation_id, filename, meta.get("page"), meta["chunk_index"], piece.page_content),
                    text=piece.page_content,
                    embedding=vector,
                    metadata=meta,
                )
            )
        return chunks
