"""Unit tests for the chat service: the query path and conversation CRUD."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from docuchat.container import Services
from docuchat.errors import GenerationError, NotFoundError, QueueError, ValidationError
from docuchat.generation.prompts import REFUSAL
from docuchat.jobs.models import IngestionJob
from fakes import InMemoryJobQueue, InMemoryVectorStore, RecordingChatModel, make_pdf


def _ingest(services: Services, tmp_path: Path, conversation_id: str, pages: list[str], name: str) -> None:
    path = tmp_path / name
    path.write_bytes(make_pdf(pages))
    result = services.ingestion.consume(
        IngestionJob(filename=name, source=str(tmp_path), path=str(path), conversation_id=conversation_id)
    )
    assert result.ok


class TestAsk:
    def test_answers_from_own_documents_only(
        self, services: Services, chat_model: RecordingChatModel, tmp_path: Path
    ) -> None:
        mine = services.chat.create_conversation("Mine")
        theirs = services.chat.create_conversation("Theirs")
        _ingest(services, tmp_path, mine.id, ["Refunds are issued within 30 days"], "mine.pdf")
        _ingest(services, tmp_path, theirs.id, ["The secret launch code is 1234"], "theirs.pdf")

        answer = services.chat.ask("What is the refund policy?", mine.id)

        assert answer.message == "<p>The policy is described in the document.</p>"
        assert answer.docs
        assert all(d["metadata"]["conversation_id"] == mine.id for d in answer.docs)
        prompt = chat_model.calls[0][1].content
        assert "Refunds are issued within 30 days" in prompt
        assert "1234" not in prompt

        roles = [m.role for m in services.chat.list_messages(mine.id)]
        assert roles == ["user", "assistant"]
        assert services.chat.list_messages(theirs.id) == []

    def test_assistant_turn_carries_sources(self, services: Services, tmp_path: Path) -> None:
        conv = services.chat.create_conversation()
        _ingest(services, tmp_path, conv.id, ["Shipping is free over 50 dollars"], "ship.pdf")

        answer = services.chat.ask("Is shipping free?", conv.id)

        assistant = services.chat.list_messages(conv.id)[-1]
        assert assistant.sources == answer.docs
        assert assistant.sources[0]["source"] == "ship.pdf"
        json.dumps(assistant.sources)

    def test_no_documents_refuses(self, services: Services, chat_model: RecordingChatModel) -> None:
        conv = services.chat.create_conversation()
        answer = services.chat.ask("Anything?", conv.id)
        assert answer.message == REFUSAL
        assert answer.docs == []
        assert chat_model.calls == []

    def test_generation_failure_leaves_question_recorded(
        self, services: Services, chat_model: RecordingChatModel, tmp_path: Path
    ) -> None:
        conv = services.chat.create_conversation()
        _ingest(services, tmp_path, conv.id, ["Some content"], "doc.pdf")
        chat_model.error = RuntimeError("provider down")

        with pytest.raises(GenerationError):
            services.chat.ask("Question?", conv.id)

        messages = services.chat.list_messages(conv.id)
        assert [(m.role, m.content) for m in messages] == [("user", "Question?")]

    def test_unknown_conversation(self, services: Services) -> None:
        with pytest.raises(NotFoundError):
            services.chat.ask("Question?", "does-not-exist")

    @pytest.mark.parametrize("question, conversation_id", [("", "x"), ("q", ""), ("   ", "x")])
    def test_validation_before_lookup(self, services: Services, question: str, conversation_id: str) -> None:
        with pytest.raises(ValidationError):
            services.chat.ask(question, conversation_id)


class TestConversations:
    def test_delete_removes_chunks_and_rows(
        self, services: Services, vector_store: InMemoryVectorStore, tmp_path: Path
    ) -> None:
        doomed = services.chat.create_conversation()
        kept = services.chat.create_conversation()
        _ingest(services, tmp_path, doomed.id, ["alpha"], "a.pdf")
        _ingest(services, tmp_path, kept.id, ["beta"], "b.pdf")

        services.chat.delete_conversation(doomed.id)

        owners = {c.metadata["conversation_id"] for c in vector_store.chunks()}
        assert owners == {kept.id}
        with pytest.raises(NotFoundError):
            services.chat.get_conversation(doomed.id)

    def test_delete_unknown(self, services: Services) -> None:
        with pytest.raises(NotFoundError):
            services.chat.delete_conversation("missing")

    def test_rename_requires_name(self, services: Services) -> None:
        conv = services.chat.create_conversation()
        with pytest.raises(ValidationError, match="Name is required"):
            services.chat.rename_conversation(conv.id, "  ")
        assert services.chat.rename_conversation(conv.id, " Report ").name == "Report"

    def test_add_message_defaults_to_user(self, services: Services) -> None:
        conv = services.chat.create_conversation()
        message = services.chat.add_message(conv.id, "hello")
        assert message.role == "user"
        with pytest.raises(ValidationError):
            services.chat.add_message(conv.id, "")
        with pytest.raises(ValidationError):
            services.chat.add_message(conv.id, "x", role="system")

    def test_list_messages_unknown_conversation(self, services: Services) -> None:
        with pytest.raises(NotFoundError):
            services.chat.list_messages("missing")


class TestAttachFile:
    def test_records_file_and_enqueues_job(self, services: Services, job_queue: InMemoryJobQueue) -> None:
        conv = services.chat.create_conversation()

        record = services.chat.attach_file(conv.id, "policy.pdf", "uploads/1-2-policy.pdf")

        assert record.filename == "policy.pdf"
        assert [f.id for f in services.chat.list_files(conv.id)] == [record.id]
        (raw,) = job_queue.pending
        job = IngestionJob.from_payload(raw)
        assert job.conversation_id == conv.id
        assert job.path == "uploads/1-2-policy.pdf"
        assert job.source == "uploads"
        assert json.loads(raw)["chatId"] == conv.id

    def test_unknown_conversation_enqueues_nothing(self, services: Services, job_queue: InMemoryJobQueue) -> None:
        with pytest.raises(NotFoundError):
            services.chat.attach_file("missing", "policy.pdf", "uploads/p.pdf")
        assert not job_queue.pending

    def test_rejected_enqueue_removes_file_record(self, services: Services, job_queue: InMemoryJobQueue) -> None:
        conv = services.chat.create_conversation()
        job_queue.error = QueueError("Could not enqueue job for 'policy.pdf': refused")

        with pytest.raises(QueueError):
            services.chat.attach_file(conv.id, "policy.pdf", "uploads/1-2-policy.pdf")

        assert services.chat.list_files(conv.id) == []
        assert not job_queue.pending

    def test_upload_succeeds_once_queue_recovers(self, services: Services, job_queue: InMemoryJobQueue) -> None:
        conv = services.chat.create_conversation()
        job_queue.error = QueueError("refused")
        with pytest.raises(QueueError):
            services.chat.attach_file(conv.id, "policy.pdf", "uploads/1-policy.pdf")

        job_queue.error = None
        record = services.chat.attach_file(conv.id, "policy.pdf", "uploads/2-policy.pdf")

        assert [f.id for f in services.chat.list_files(conv.id)] == [record.id]
