"""Abstract job queue seen by the upload path."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docuchat.jobs.models import IngestionJob


class JobQueue(ABC):
    """Hands ingestion jobs to whatever runs the workers."""

    @abstractmethod
    def enqueue(self, job: IngestionJob) -> str:
        """Submit *job* and return its queue id.

        Raises :class:`~docuchat.errors.QueueError` when the broker is
        unreachable; nothing is queued in that case.
        """

    def close(self) -> None:
        """Release connections.  Default is a no-op."""
