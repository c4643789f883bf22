"""SQLAlchemy engine and session factory for the local key-value store."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lead_insight.db.models import Base

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(url: str) -> Engine:
    """Create an engine and make sure the store table exists."""
    kwargs: dict = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # An in-memory database only exists inside one connection
        if url in _MEMORY_URLS:
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, echo=False, **kwargs)
    Base.metadata.create_all(engine)
    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)
