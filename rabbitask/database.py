"""SQLAlchemy engine / session factory for the durable client state."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def make_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # The companion API touches storage from the event loop thread and
        # from TestClient worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, future=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the client state tables if they do not exist yet."""
    from .models import ClientStateEntry  # noqa: F401  (register the model)

    Base.metadata.create_all(bind=engine)
