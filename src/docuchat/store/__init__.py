"""
Store: relational persistence of conversations, messages and file metadata.

Public surface
--------------
- :class:`Database`: engine + session factory with ``init_db`` / ``dispose``.
- :class:`ChatRepository`: CRUD with cascade delete.
- :class:`Conversation`, :class:`Message`, :class:`File`: ORM rows.
"""

from docuchat.store.database import Database
from docuchat.store.models import Base, Conversation, File, Message
from docuchat.store.repository import ChatRepository

__all__ = [
    "Base",
    "ChatRepository",
    "Conversation",
    "Database",
    "File",
    "Message",
]
