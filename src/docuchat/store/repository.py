from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from docuchat.store.database import Database
from docuchat.store.models import Conversation, File, Message

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")


class ChatRepository:
    """
    CRUD over Conversation, Message and File rows.

    Every method runs in its own short session, so one repository is
    safe to share between request handlers and worker threads.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    # -- conversations ----------------------------------------------------

    def create_conversation(self, name: str | None = None) -> Conversation:
        with self._db.session() as db:
            conversation = Conversation(name=name or "New Chat")
            db.add(conversation)
            db.commit()
            db.refresh(conversation)
        logger.info("Conversation created | conversation_id=%s", conversation.id)
        return conversation

    def list_conversations(self) -> list[Conversation]:
        with self._db.session() as db:
            rows = db.scalars(
                select(Conversation).order_by(Conversation.created_at.desc())
            ).all()
        logger.debug("Listed conversations | count=%d", len(rows))
        return list(rows)

    def get_conversation(self, conversation_id: str, *, with_messages: bool = False) -> Conversation | None:
        stmt = select(Conversation).where(Conversation.id == conversation_id)
        if with_messages:
            stmt = stmt.options(selectinload(Conversation.messages))
        with self._db.session() as db:
            return db.scalars(stmt).first()

    def conversation_exists(self, conversation_id: str) -> bool:
        return self.get_conversation(conversation_id) is not None

    def rename_conversation(self, conversation_id: str, name: str) -> Conversation | None:
        with self._db.session() as db:
            conversation = db.get(Conversation, conversation_id)
            if conversation is None:
                return None
            conversation.name = name
            db.commit()
            db.refresh(conversation)
        logger.info("Conversation renamed | conversation_id=%s", conversation_id)
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation with its messages and files.  ``False`` if absent."""
        with self._db.session() as db:
            conversation = db.get(Conversation, conversation_id)
            if conversation is None:
                return False
            db.delete(conversation)
            db.commit()
        logger.info("Conversation deleted | conversation_id=%s", conversation_id)
        return True

    # -- messages ---------------------------------------------------------

    def add_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        sources: list[dict[str, Any]] | None = None,
    ) -> Message:
        if role not in ROLES:
            raise ValueError(f"Unknown message role: {role!r}")
        with self._db.session() as db:
            message = Message(
                conversation_id=conversation_id,
                role=role,
                content=content,
                sources=sources,
            )
            db.add(message)
            db.commit()
            db.refresh(message)
        logger.info(
            "Message persisted | conversation_id=%s | role=%s | message_id=%d",
            conversation_id,
            role,
            message.id,
        )
        return message

    def list_messages(self, conversation_id: str) -> list[Message]:
        """All messages of a conversation in creation order."""
        with self._db.session() as db:
            rows = db.scalars(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            ).all()
        return list(rows)

    # -- files ------------------------------------------------------------

    def add_file(self, conversation_id: str, filename: str) -> File:
        with self._db.session() as db:
            record = File(conversation_id=conversation_id, filename=filename)
            db.add(record)
            db.commit()
            db.refresh(record)
        logger.info(
            "Uploaded file registered | conversation_id=%s | file_id=%s",
            conversation_id,
            record.id,
        )
        return record

    def list_files(self, conversation_id: str) -> list[File]:
        with self._db.session() as db:
            rows = db.scalars(
                select(File)
                .where(File.conversation_id == conversation_id)
                .order_by(File.created_at.asc())
            ).all()
        return list(rows)

    def delete_file(self, file_id: str) -> bool:
        with self._db.session() as db:
            record = db.get(File, file_id)
            if record is None:
                return False
            db.delete(record)
            db.commit()
        logger.info("Uploaded file removed | file_id=%s", file_id)
        return True
