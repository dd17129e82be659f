"""Shared pytest configuration and fixtures.

Nothing here talks to Redis, Chroma, a SQL server or an LLM provider:
the vector store and queue are in-memory fakes, embeddings come from
``langchain_core``'s deterministic fake, the chat model records its
prompts, and the database is in-memory SQLite.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from docuchat.config import Settings
from docuchat.container import Services
from docuchat.ingestion.embedder import Embedder
from docuchat.store.database import Database
from docuchat.store.repository import ChatRepository
from fakes import InMemoryJobQueue, InMemoryVectorStore, RecordingChatModel


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url="sqlite://",
        chroma_collection="docuchat",
        embedding_model="fake-embed",
        retrieval_k=2,
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture()
def database():
    db = Database("sqlite://")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture()
def repository(database: Database) -> ChatRepository:
    return ChatRepository(database)


@pytest.fixture()
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture()
def job_queue() -> InMemoryJobQueue:
    return InMemoryJobQueue()


@pytest.fixture()
def embedder() -> Embedder:
    return Embedder(DeterministicFakeEmbedding(size=32), model_name="fake-embed")


@pytest.fixture()
def chat_model() -> RecordingChatModel:
    return RecordingChatModel()


@pytest.fixture()
def services(
    database: Database,
    job_queue: InMemoryJobQueue,
    vector_store: InMemoryVectorStore,
    embedder: Embedder,
    chat_model: RecordingChatModel,
    test_settings: Settings,
) -> Services:
    return Services(
        database=database,
        queue=job_queue,
        vector_store=vector_store,
        embedder=embedder,
        llm=chat_model,
        config=test_settings,
    )
