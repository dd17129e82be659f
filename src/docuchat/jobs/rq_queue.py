"""RQ-backed :class:`JobQueue`.

Each upload becomes one RQ job calling :func:`docuchat.ingestion.worker.ingest`
with the JSON payload.  RQ keeps started jobs in its ``StartedJobRegistry``
with a worker heartbeat, so a job is only handed out again once the worker
that held it is gone.
"""

from __future__ import annotations

import logging

import redis
from rq import Queue, Retry

from docuchat.config import settings
from docuchat.errors import QueueError
from docuchat.jobs.base import JobQueue
from docuchat.jobs.models import IngestionJob

logger = logging.getLogger(__name__)

# Imported by the worker process, never here.
INGEST_TASK = "docuchat.ingestion.worker.ingest"


class RqJobQueue(JobQueue):
    """Enqueues ingestion jobs on a named RQ queue.

    Parameters
    ----------
    queue:
        A ready ``rq.Queue``.  When *None* one is built on
        ``redis.Redis.from_url(url)`` with the given *name*.
    url:
        Redis connection URL.
    name:
        Queue name shared with ``docuchat-worker``.
    job_timeout:
        Seconds a single ingestion may run before RQ kills it.
    """

    def __init__(
        self,
        queue: Queue | None = None,
        *,
        url: str = settings.redis_url,
        name: str = settings.queue_name,
        job_timeout: int = settings.job_timeout_seconds,
    ) -> None:
        self._queue = queue if queue is not None else Queue(name, connection=redis.Redis.from_url(url))
        self.job_timeout = job_timeout

    @property
    def name(self) -> str:
        return self._queue.name

    def enqueue(self, job: IngestionJob) -> str:
        try:
            queued = self._queue.enqueue(
                INGEST_TASK,
                job.to_payload(),
                job_timeout=self.job_timeout,
                # A job abandoned by a dead worker runs once more; deterministic
                # chunk ids make the second run overwrite the first.
                retry=Retry(max=1),
                description=f"ingest {job.filename or job.path}",
            )
        except redis.RedisError as exc:
            raise QueueError(f"Could not enqueue job for {job.filename!r}: {exc}") from exc
        logger.info(
            "Job enqueued | queue=%s | job_id=%s | conversation_id=%s | filename=%s",
            self.name,
            queued.id,
            job.conversation_id,
            job.filename,
        )
        return queued.id

    def close(self) -> None:
        self._queue.connection.close()
