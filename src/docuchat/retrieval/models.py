"""Indexed chunks, scoped search filters and the citations attached to answers."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

CONVERSATION_KEY = "conversation_id"


class MetadataFilter(BaseModel):
    """One metadata predicate; a list of them is AND-ed by every backend.

    ``in`` / ``nin`` take a list as *value*.
    """

    field: str
    operator: Literal["eq", "ne", "in", "nin"] = "eq"
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def one_of(cls, field: str, values: list[Any]) -> MetadataFilter:
        return cls(field=field, operator="in", value=list(values))

    @classmethod
    def conversation(cls, conversation_id: str) -> MetadataFilter:
        """Only chunks uploaded to *conversation_id*."""
        return cls.equals(CONVERSATION_KEY, conversation_id)

    def matches(self, metadata: dict[str, Any]) -> bool:
        actual = metadata.get(self.field)
        if self.operator == "eq":
            return actual == self.value
        if self.operator == "ne":
            return actual != self.value
        if self.operator == "in":
            return actual in self.value
        return actual not in self.value


class Chunk(BaseModel):
    """A bounded span of document text with its embedding, ready to upsert."""

    id: str
    text: str
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def conversation_id(self) -> str | None:
        return self.metadata.get(CONVERSATION_KEY)


class Citation(BaseModel):
    """Where a retrieved passage came from.

    Attributes
    ----------
    document_id:
        Chunk id in the vector index.
    source:
        Original filename of the upload.
    page:
        Zero-based page for paginated documents.
    chunk_index:
        Position of the chunk within its document.
    score:
        Cosine similarity to the question; higher is closer.
    metadata:
        Everything stored with the chunk, including ``conversation_id``
        and ``embedding_model``.
    """

    document_id: str | None = None
    source: str = "unknown"
    page: int | None = None
    chunk_index: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def label(self) -> str:
        """Human-readable reference, e.g. ``policy.pdf p.2 #3``."""
        parts = [self.source]
        if self.page is not None:
            parts.append(f"p.{self.page + 1}")
        if self.chunk_index is not None:
            parts.append(f"#{self.chunk_index}")
        return " ".join(parts)


class RetrievalResult(BaseModel):
    content: str
    citation: Citation

    def __str__(self) -> str:
        return f"[{self.citation.label()}] {self.content[:80]}"


class RetrievedContext(BaseModel):
    """Prompt context plus the ranked passages it was built from."""

    context: str
    sources: list[RetrievalResult] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.sources

    def citations(self) -> list[dict[str, Any]]:
        """Ranked sources as plain dicts, suitable for a message's JSON column."""
        return [{"content": r.content, **r.citation.model_dump()} for r in self.sources]
