"""Engine and session factory with an explicit create/dispose lifecycle."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docuchat.config import settings
from docuchat.store.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ANN001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns one SQLAlchemy engine.

    In-memory SQLite URLs share a single connection across threads so
    tests and the worker pool see the same data.
    """

    def __init__(self, url: str = settings.database_url, *, echo: bool = False) -> None:
        kwargs: dict = {"echo": echo, "future": True}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
        self.url = url
        self.engine = create_engine(url, **kwargs)
        if url.startswith("sqlite"):
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = sessionmaker(
            self.engine,
            class_=Session,
            expire_on_commit=False,
            autoflush=False,
        )

    def init_db(self) -> None:
        """Create tables if they do not exist.  Call once at startup."""
        Base.metadata.create_all(self.engine)
        logger.info("Database initialized | url=%s", self.engine.url.render_as_string(hide_password=True))

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()
