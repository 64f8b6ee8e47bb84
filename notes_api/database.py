from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from notes_api.logging_config import get_logger
from notes_api.models import Base

logger = get_logger(__name__)


class Database:
    """
    Handle on the relational store: owns the engine and the session factory.

    Constructed once by the application factory; ``connect`` and ``disconnect``
    are called by the application lifespan.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    def connect(self) -> None:
        """Create the engine and make sure all tables exist."""
        if self._engine is not None:
            return
        kwargs = {"echo": self.echo, "future": True}
        if self.url.startswith("sqlite"):
            # SQLite needs check_same_thread=False for multithreading in FastAPI
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.url or self.url in ("sqlite://", "sqlite:///"):
                # a single shared connection, otherwise every session sees an empty db
                kwargs["poolclass"] = StaticPool
        self._engine = create_engine(self.url, **kwargs)
        self._sessionmaker = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self._engine
        )
        Base.metadata.create_all(bind=self._engine)
        logger.info("Database connected (%s)", self._engine.url.render_as_string(hide_password=True))

    def disconnect(self) -> None:
        """Dispose of the engine's connection pool."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database disconnected")

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()


def get_db(request: Request) -> Iterator[Session]:
    """
    Dependency that provides a database session and ensures proper cleanup.
    """
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
