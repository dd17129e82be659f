"""Chat service: the synchronous entry points behind the HTTP surface.

Query state machine
-------------------
::

    RECEIVED → USER_TURN_PERSISTED → QUESTION_EMBEDDED → RETRIEVED
             → GENERATING → ANSWERED | FAILED

A failure after ``USER_TURN_PERSISTED`` leaves the question recorded
without a reply.  There is no resume; the caller retries from scratch.
"""

from __future__ import annotations

import enum
import logging
import os
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from docuchat.errors import DocuChatError, NotFoundError, QueueError, ValidationError
from docuchat.jobs.models import IngestionJob
from docuchat.retrieval.models import MetadataFilter

if TYPE_CHECKING:
    from docuchat.generation.client import GenerationClient
    from docuchat.jobs.base import JobQueue
    from docuchat.retrieval.base import VectorStoreBase
    from docuchat.retrieval.retriever import RetrievalEngine
    from docuchat.store.models import Conversation, File, Message
    from docuchat.store.repository import ChatRepository

logger = logging.getLogger(__name__)


class QueryState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    USER_TURN_PERSISTED = "USER_TURN_PERSISTED"
    QUESTION_EMBEDDED = "QUESTION_EMBEDDED"
    RETRIEVED = "RETRIEVED"
    GENERATING = "GENERATING"
    ANSWERED = "ANSWERED"
    FAILED = "FAILED"


class Answer(BaseModel):
    """A grounded answer with the ranked sources it was generated from."""

    message: str
    docs: list[dict[str, Any]] = Field(default_factory=list)
    state: QueryState = QueryState.ANSWERED


class ChatService:
    def __init__(
        self,
        repository: ChatRepository,
        retrieval: RetrievalEngine,
        generation: GenerationClient,
        queue: JobQueue,
        vector_store: VectorStoreBase,
        *,
        collection_name: str,
    ) -> None:
        self._repository = repository
        self._retrieval = retrieval
        self._generation = generation
        self._queue = queue
        self._vector_store = vector_store
        self.collection_name = collection_name

    # -- query ------------------------------------------------------------

    def ask(self, question: str, conversation_id: str) -> Answer:
        """Answer *question* strictly from *conversation_id*'s documents."""
        logger.info("Query state | conversation_id=%s | state=%s", conversation_id, QueryState.RECEIVED.value)
        try:
            retrieved = self._retrieval.retrieve(question, conversation_id)
            sources = retrieved.citations()
            answer = self._generation.generate(
                retrieved.context,
                question,
                conversation_id=conversation_id,
                sources=sources,
            )
        except DocuChatError as exc:
            logger.error(
                "Query state | conversation_id=%s | state=%s | %s: %s",
                conversation_id,
                QueryState.FAILED.value,
                type(exc).__name__,
                exc.message,
            )
            raise
        logger.info("Query state | conversation_id=%s | state=%s", conversation_id, QueryState.ANSWERED.value)
        return Answer(message=answer, docs=sources)

    # -- conversations ----------------------------------------------------

    def create_conversation(self, name: str | None = None) -> Conversation:
        return self._repository.create_conversation(name)

    def list_conversations(self) -> list[Conversation]:
        return self._repository.list_conversations()

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self._repository.get_conversation(conversation_id, with_messages=True)
        if conversation is None:
            raise NotFoundError("Chat not found")
        return conversation

    def rename_conversation(self, conversation_id: str, name: str | None) -> Conversation:
        if not name or not name.strip():
            raise ValidationError("Name is required")
        conversation = self._repository.rename_conversation(conversation_id, name.strip())
        if conversation is None:
            raise NotFoundError("Chat not found")
        return conversation

    def delete_conversation(self, conversation_id: str) -> None:
        """Remove the conversation's chunks, then its rows (messages and files cascade)."""
        self.require_conversation(conversation_id)
        self._vector_store.delete_where(self.collection_name, [MetadataFilter.conversation(conversation_id)])
        self._repository.delete_conversation(conversation_id)

    # -- messages ---------------------------------------------------------

    def add_message(self, conversation_id: str, content: str | None, role: str | None = None) -> Message:
        if not content:
            raise ValidationError("content is required")
        role = role or "user"
        if role not in ("user", "assistant"):
            raise ValidationError("role must be 'user' or 'assistant'")
        self.require_conversation(conversation_id)
        return self._repository.add_message(conversation_id, role, content)

    def list_messages(self, conversation_id: str) -> list[Message]:
        self.require_conversation(conversation_id)
        return self._repository.list_messages(conversation_id)

    # -- files ------------------------------------------------------------

    def attach_file(self, conversation_id: str, filename: str, path: str) -> File:
        """Record an upload and enqueue it for ingestion.

        If the queue rejects the job the File row is removed again, so a
        listed file always has an ingestion job behind it.
        """
        if not filename or not path:
            raise ValidationError("file is required")
        self.require_conversation(conversation_id)
        record = self._repository.add_file(conversation_id, filename)
        job = IngestionJob(
            filename=filename,
            source=os.path.dirname(path),
            path=path,
            conversation_id=conversation_id,
        )
        try:
            self._queue.enqueue(job)
        except QueueError:
            logger.error("Enqueue failed, discarding upload record | conversation_id=%s", conversation_id)
            self._repository.delete_file(record.id)
            raise
        return record

    def list_files(self, conversation_id: str) -> list[File]:
        self.require_conversation(conversation_id)
        return self._repository.list_files(conversation_id)

    def require_conversation(self, conversation_id: str) -> None:
        if not conversation_id:
            raise ValidationError("chatId is required")
        if not self._repository.conversation_exists(conversation_id):
            raise NotFoundError("Chat not found")
