"""Split extracted pages into bounded, ordered chunks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_text_splitters import RecursiveCharacterTextSplitter

from docuchat.config import settings

if TYPE_CHECKING:
    from langchain_core.documents import Document

# Paragraphs first, then lines, sentences and words.
_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


def build_splitter(chunk_size: int, chunk_overlap: int) -> RecursiveCharacterTextSplitter:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not 0 <= chunk_overlap < chunk_size:
        raise ValueError("chunk_overlap must be in [0, chunk_size)")
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=_SEPARATORS,
    )


def chunk_documents(
    documents: list[Document],
    chunk_size: int = settings.chunk_size,
    chunk_overlap: int = settings.chunk_overlap,
) -> list[Document]:
    """Split *documents* and number the pieces.

    Each chunk inherits its page's metadata (``conversation_id``,
    ``source``, ``page``) and gains a ``chunk_index`` counting from 0
    across the whole document in extraction order.  Whitespace-only
    pieces are discarded, so a page without text contributes nothing.
    """
    pieces = build_splitter(chunk_size, chunk_overlap).split_documents(documents)
    chunks = [piece for piece in pieces if piece.page_content.strip()]
    for position, chunk in enumerate(chunks):
        chunk.metadata["chunk_index"] = position
    return chunks
