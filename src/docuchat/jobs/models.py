"""Queue payload schema."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IngestionJob(BaseModel):
    """One uploaded document waiting to be indexed.

    Attributes
    ----------
    filename:
        Original filename as uploaded.
    source:
        Directory the upload handler stored the file in.
    path:
        Local path of the stored file.
    conversation_id:
        Owning conversation.  Accepted on the wire as ``chatId``,
        ``conversationId`` or ``conversation_id``.  May be missing, in
        which case the worker drops the job.
    """

    model_config = ConfigDict(populate_by_name=True)

    filename: str = ""
    source: str = ""
    path: str
    conversation_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("conversation_id", "conversationId", "chatId"),
        serialization_alias="chatId",
    )

    def to_payload(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_payload(cls, raw: str | bytes) -> IngestionJob:
        """Parse a queue payload.  Raises ``pydantic.ValidationError`` when malformed."""
        return cls.model_validate_json(raw)
