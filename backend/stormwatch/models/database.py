"""Database engine and session factory for SQLAlchemy."""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from ..config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str, timeout: float = settings.store_timeout_sec, **kwargs) -> Engine:
    """Create a SQLite engine usable from worker threads.

    ``timeout`` is the SQLite busy timeout, which bounds how long a query
    waits on a locked database.
    """
    return create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": timeout},
        echo=False,
        **kwargs,
    )


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_database(bind: Engine = engine) -> None:
    """Create all tables.

    Models must be imported before create_all() so they register with Base.metadata.
    """
    from . import observation  # noqa: F401
    Base.metadata.create_all(bind=bind)

    # WAL lets the HTTP endpoint read while the ingest thread writes
    with bind.connect() as conn:
        conn.execute(text("PRAGMA journal_mode=WAL"))
        conn.commit()
