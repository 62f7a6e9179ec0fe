from contextlib import contextmanager
from typing import Iterator

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool

from .config import settings


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        extra = {}
        if database_url not in ("sqlite://", "sqlite:///:memory:"):
            extra["poolclass"] = NullPool  # avoid pooled connections holding write locks
        engine = create_engine(
            database_url,
            echo=settings.sql_echo,
            connect_args={"check_same_thread": False, "timeout": 60},
            **extra,
        )
        # Configure SQLite pragmas to reduce locking
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
                conn.exec_driver_sql("PRAGMA busy_timeout=60000;")
        except OperationalError:
            # The database may be momentarily locked during reloader startup.
            pass
        return engine
    return create_engine(database_url, echo=settings.sql_echo)


engine = build_engine(settings.database_url)


def get_session():
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run one logical operation as a single database transaction.

    Commits when the block exits normally and rolls back on any exception,
    so a rejected balance guard never leaves a half-written record behind.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def init_db(bind=None):
    from .models import user, account, category, transaction, allocation, borrowing  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
