"""Embedding wrapper shared by ingestion and query time."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from docuchat.config import settings
from docuchat.errors import EmbeddingError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(model_name: str = settings.embedding_model) -> Embeddings:
    """Return the configured sentence-transformer embedding function."""
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(model_name=model_name)


class Embedder:
    """Fixed-dimension embedding client.

    The same instance (and therefore the same model) must serve both
    ingestion and retrieval; ``model_name`` is stamped on every chunk so
    the retrieval engine can detect an index built with another model.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.  When *None*, a
        ``HuggingFaceEmbeddings`` for *model_name* is loaded.
    model_name:
        Identifier recorded alongside each vector.
    """

    def __init__(
        self,
        embeddings: Embeddings | None = None,
        *,
        model_name: str = settings.embedding_model,
    ) -> None:
        self._embeddings = embeddings if embeddings is not None else get_embedding_function(model_name)
        self.model_name = model_name
        self._dimension: int | None = None
        self._dimension_lock = threading.Lock()

    @property
    def dimension(self) -> int | None:
        """Vector size observed so far (``None`` before the first call)."""
        return self._dimension

    def embed_query(self, text: str) -> list[float]:
        try:
            vector = self._embeddings.embed_query(text)
        except Exception as exc:
            raise EmbeddingError(f"Embedding provider failed: {exc}") from exc
        self._check([vector])
        return list(vector)

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            vectors = self._embeddings.embed_documents(texts)
        except Exception as exc:
            raise EmbeddingError(f"Embedding provider failed: {exc}") from exc
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts"
            )
        self._check(vectors)
        return [list(v) for v in vectors]

    def _check(self, vectors: list[list[float]]) -> None:
        for vector in vectors:
            if not vector:
                raise EmbeddingError("Embedding provider returned an empty vector")
            with self._dimension_lock:
                if self._dimension is None:
                    self._dimension = len(vector)
                    logger.info(
                        "Embedding dimension fixed | model=%s | dim=%d",
                        self.model_name,
                        self._dimension,
                    )
                elif len(vector) != self._dimension:
                    raise EmbeddingError(
                        f"Expected {self._dimension}-dim vector, got {len(vector)}"
                    )
