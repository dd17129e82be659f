"""Unit tests for the relational store."""

from __future__ import annotations

import pytest

from docuchat.store.repository import ChatRepository


def test_create_defaults_name(repository: ChatRepository) -> None:
    conv = repository.create_conversation()
    assert conv.name == "New Chat"
    assert len(conv.id) == 32
    assert conv.created_at is not None


def test_messages_listed_in_creation_order(repository: ChatRepository) -> None:
    conv = repository.create_conversation("Doc A")
    for i in range(5):
        repository.add_message(conv.id, "user" if i % 2 == 0 else "assistant", f"turn {i}")
    assert [m.content for m in repository.list_messages(conv.id)] == [f"turn {i}" for i in range(5)]


def test_unknown_role_rejected(repository: ChatRepository) -> None:
    conv = repository.create_conversation()
    with pytest.raises(ValueError):
        repository.add_message(conv.id, "system", "nope")


def test_sources_round_trip(repository: ChatRepository) -> None:
    conv = repository.create_conversation()
    sources = [{"source": "policy.pdf", "score": 0.9, "chunk_index": 0}]
    repository.add_message(conv.id, "assistant", "<p>ok</p>", sources=sources)
    assert repository.list_messages(conv.id)[0].sources == sources


def test_delete_cascades_and_isolates(repository: ChatRepository) -> None:
    doomed = repository.create_conversation("A")
    kept = repository.create_conversation("B")
    for conv in (doomed, kept):
        repository.add_message(conv.id, "user", "hello")
        repository.add_file(conv.id, "doc.pdf")

    assert repository.delete_conversation(doomed.id) is True

    assert repository.get_conversation(doomed.id) is None
    assert repository.list_messages(doomed.id) == []
    assert repository.list_files(doomed.id) == []
    assert len(repository.list_messages(kept.id)) == 1
    assert len(repository.list_files(kept.id)) == 1


def test_delete_missing_returns_false(repository: ChatRepository) -> None:
    assert repository.delete_conversation("missing") is False


def test_rename(repository: ChatRepository) -> None:
    conv = repository.create_conversation()
    renamed = repository.rename_conversation(conv.id, "Quarterly report")
    assert renamed is not None and renamed.name == "Quarterly report"
    assert repository.rename_conversation("missing", "x") is None


def test_list_conversations_newest_first(repository: ChatRepository) -> None:
    first = repository.create_conversation("first")
    second = repository.create_conversation("second")
    ids = [c.id for c in repository.list_conversations()]
    assert ids.index(second.id) < ids.index(first.id)


def test_get_with_messages(repository: ChatRepository) -> None:
    conv = repository.create_conversation()
    repository.add_message(conv.id, "user", "q")
    repository.add_message(conv.id, "assistant", "a")
    loaded = repository.get_conversation(conv.id, with_messages=True)
    assert [m.role for m in loaded.messages] == ["user", "assistant"]
