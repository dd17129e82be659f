"""Document loaders: thin wrappers around LangChain document loaders."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from langchain_community.document_loaders import PyPDFLoader, TextLoader

from docuchat.errors import LoadError

if TYPE_CHECKING:
    from langchain_core.documents import Document

SUPPORTED_SUFFIXES = (".pdf", ".txt", ".md")


def normalize_path(path: str | Path) -> Path:
    """Accept Windows-style separators from upload handlers on any platform."""
    return Path(str(path).replace("\\", "/"))


def load_pdf(path: str | Path) -> list[Document]:
    """Load a single PDF file, one document per page."""
    return PyPDFLoader(str(path)).load()


def load_text(path: str | Path) -> list[Document]:
    """Load a plain-text or Markdown file as a single page."""
    return TextLoader(str(path), encoding="utf-8").load()


def load_document(path: str | Path) -> list[Document]:
    """Extract page-level text from the file at *path*.

    Parameters
    ----------
    path:
        Local path handed over by the upload handler.

    Returns
    -------
    list[Document]
        One LangChain ``Document`` per page, in page order.

    Raises
    ------
    LoadError
        The file is missing, has an unsupported type, or cannot be parsed.
    """
    file_path = normalize_path(path)
    suffix = file_path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise LoadError(f"Unsupported document type {suffix or '<none>'!r}: {file_path.name}")
    if not file_path.is_file():
        raise LoadError(f"No such file: {file_path}")

    try:
        pages = load_pdf(file_path) if suffix == ".pdf" else load_text(file_path)
    except Exception as exc:
        raise LoadError(f"Could not parse {file_path.name}: {exc}") from exc

    if not pages:
        raise LoadError(f"No pages extracted from {file_path.name}")
    return pages
