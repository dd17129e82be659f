"""Explicitly constructed service graph.

Nothing in the package holds a module-level client: entry points build a
:class:`Services` once, hand its members to whoever needs them and call
:meth:`Services.close` on shutdown.  Tests build one from fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from docuchat.config import Settings, settings
from docuchat.generation.client import GenerationClient
from docuchat.ingestion.embedder import Embedder
from docuchat.ingestion.pipeline import IngestionPipeline
from docuchat.retrieval.retriever import RetrievalEngine, SemanticRetriever
from docuchat.service import ChatService
from docuchat.store.database import Database
from docuchat.store.repository import ChatRepository

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

    from docuchat.jobs.base import JobQueue
    from docuchat.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


@dataclass
class Services:
    database: Database
    queue: JobQueue
    vector_store: VectorStoreBase
    embedder: Embedder
    llm: BaseChatModel
    config: Settings = field(default_factory=lambda: settings)

    def __post_init__(self) -> None:
        self.repository = ChatRepository(self.database)
        self.retriever = SemanticRetriever(
            self.vector_store,
            self.embedder,
            collection_name=self.config.chroma_collection,
            default_k=self.config.retrieval_k,
            strict_embedding_model=self.config.strict_embedding_model,
        )
        self.retrieval = RetrievalEngine(self.retriever, self.repository)
        self.generation = GenerationClient(self.llm, self.repository)
        self.ingestion = IngestionPipeline(
            self.embedder,
            self.vector_store,
            collection_name=self.config.chroma_collection,
            chunk_size=self.config.chunk_size,
            chunk_overlap=self.config.chunk_overlap,
        )
        self.chat = ChatService(
            self.repository,
            self.retrieval,
            self.generation,
            self.queue,
            self.vector_store,
            collection_name=self.config.chroma_collection,
        )

    @classmethod
    def from_settings(cls, config: Settings = settings) -> Services:
        """Build production clients (SQL database, RQ on Redis, Chroma, HF, ChatOpenAI)."""
        from docuchat.generation.llm import get_llm
        from docuchat.jobs.rq_queue import RqJobQueue
        from docuchat.retrieval.chroma_store import ChromaVectorStore

        database = Database(config.database_url)
        database.init_db()
        return cls(
            database=database,
            queue=RqJobQueue(
                url=config.redis_url,
                name=config.queue_name,
                job_timeout=config.job_timeout_seconds,
            ),
            vector_store=ChromaVectorStore(host=config.chroma_host, port=config.chroma_port),
            embedder=Embedder(model_name=config.embedding_model),
            llm=get_llm(config),
            config=config,
        )

    def close(self) -> None:
        self.queue.close()
        self.vector_store.close()
        self.database.dispose()
        logger.info("Services closed")
