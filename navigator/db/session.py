from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from navigator.db.base import Base
import navigator.db.models  # noqa: F401  registers ORM tables on Base.metadata


_IN_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def create_cache_engine(database_url: str) -> Engine:
    if database_url in _IN_MEMORY_URLS:
        # One shared connection, otherwise every session sees an empty database
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create the cache tables if needed and return a session factory."""
    Base.metadata.create_all(engine)
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
