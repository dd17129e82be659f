"""RQ worker side of ingestion.

``docuchat-worker`` starts an ``rq`` :class:`~rq.worker_pool.WorkerPool` of
``worker_concurrency`` processes on the upload queue.  Each process runs
:func:`ingest` for one job at a time and keeps its own warm
:class:`IngestionPipeline` (embedding model, Chroma client) for its
lifetime.  Every job ends in an :class:`IngestionResult`; only a crash of
the process itself leaves the job to RQ's abandoned-job handling.

Run it as a process::

    docuchat-worker            # or: python -m docuchat.ingestion.worker
"""

from __future__ import annotations

import atexit
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

import redis
from pydantic import ValidationError as PydanticValidationError
from rq import SimpleWorker
from rq.worker_pool import WorkerPool

from docuchat.config import Settings, settings
from docuchat.ingestion.pipeline import DROPPED, FAILED, IngestionResult
from docuchat.jobs.models import IngestionJob

if TYPE_CHECKING:
    from docuchat.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

_pipeline: IngestionPipeline | None = None


def bind_pipeline(pipeline: IngestionPipeline | None) -> None:
    """Use *pipeline* for :func:`ingest` in this process (``None`` to reset)."""
    global _pipeline
    _pipeline = pipeline


def _current_pipeline() -> IngestionPipeline:
    if _pipeline is None:
        from docuchat.container import Services

        services = Services.from_settings(settings)
        atexit.register(services.close)
        bind_pipeline(services.ingestion)
        logger.info("Ingestion pipeline ready in worker process")
    return _pipeline


def run_payload(pipeline: IngestionPipeline, payload: str | bytes) -> IngestionResult:
    """Parse one queue payload and run it to a terminal result.  Never raises."""
    try:
        job = IngestionJob.from_payload(payload)
    except PydanticValidationError as exc:
        logger.error("Malformed job payload, dropping | error_count=%d", exc.error_count())
        return IngestionResult(DROPPED, error="malformed payload")

    logger.info("Job received | conversation_id=%s | filename=%s", job.conversation_id, job.filename)
    try:
        return pipeline.consume(job)
    except Exception as exc:
        logger.exception("Job crashed | conversation_id=%s | filename=%s", job.conversation_id, job.filename)
        return IngestionResult(FAILED, job.conversation_id, job.filename, error=str(exc))


def ingest(payload: str) -> dict[str, Any]:
    """RQ task: ingest one upload.

    Failures are reported in the returned result rather than raised, so RQ
    marks the job finished and never retries a document that cannot be
    ingested.
    """
    return asdict(run_payload(_current_pipeline(), payload))


def build_worker_pool(
    connection: redis.Redis,
    config: Settings = settings,
) -> WorkerPool:
    """``worker_concurrency`` long-lived RQ worker processes on the upload queue."""
    if config.worker_concurrency < 1:
        raise ValueError("worker_concurrency must be >= 1")
    return WorkerPool(
        [config.queue_name],
        connection=connection,
        num_workers=config.worker_concurrency,
        worker_class=SimpleWorker,
    )


def main() -> None:
    """Entry point: run the worker pool until SIGINT / SIGTERM."""
    from docuchat.config import configure_logging

    configure_logging(settings.log_level)
    connection = redis.Redis.from_url(settings.redis_url)
    pool = build_worker_pool(connection, settings)
    logger.info(
        "Worker pool starting | queue=%s | concurrency=%d",
        settings.queue_name,
        settings.worker_concurrency,
    )
    pool.start(logging_level=settings.log_level)


if __name__ == "__main__":
    main()
