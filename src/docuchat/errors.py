"""Error taxonomy shared by the ingestion and query paths.

Every error carries an HTTP-equivalent ``status_code`` so the serving
layer can map it without a lookup table.  The asynchronous ingestion
path never raises these to the uploader; it records them on an
:class:`~docuchat.ingestion.pipeline.IngestionResult` instead.
"""

from __future__ import annotations


class DocuChatError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DocuChatError):
    """A required field is missing or empty.  Never retried."""

    status_code = 400


class NotFoundError(DocuChatError):
    """The referenced conversation does not exist."""

    status_code = 404


class LoadError(DocuChatError):
    """The uploaded document could not be parsed."""

    status_code = 422


class EmbeddingError(DocuChatError):
    """The embedding provider failed or returned an unusable vector."""

    status_code = 502


class VectorIndexError(DocuChatError):
    """The vector index rejected a collection, upsert, query or delete call."""

    status_code = 502


class GenerationError(DocuChatError):
    """The generative model failed: rate limit, provider error or malformed reply."""

    status_code = 502


class GenerationTimeoutError(GenerationError):
    """The generative model did not answer within the configured timeout."""

    status_code = 504


class QueueError(DocuChatError):
    """The job queue could not accept or hand out a message."""

    status_code = 503
