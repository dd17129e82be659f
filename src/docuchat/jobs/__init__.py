"""
Jobs: the durable queue between upload acceptance and ingestion.

Public surface
--------------
- :class:`IngestionJob`: payload schema.
- :class:`JobQueue`: abstract producer side of the queue.
- :class:`RqJobQueue`: RQ backend on Redis.
"""

from docuchat.jobs.base import JobQueue
from docuchat.jobs.models import IngestionJob

__all__ = ["IngestionJob", "JobQueue", "RqJobQueue"]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import RqJobQueue so the API can be imported without rq installed."""
    if name == "RqJobQueue":
        from docuchat.jobs.rq_queue import RqJobQueue

        return RqJobQueue
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
