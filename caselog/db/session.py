# caselog/db/session.py
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from caselog.core.config import settings


def make_engine(db_uri: str, *, echo: bool = False) -> Engine:
    """
    Build an engine for `db_uri`.
    SQLite gets check_same_thread=False because store calls run in worker
    threads; in-memory SQLite shares one connection across them.
    """
    kwargs: Dict[str, Any] = {"echo": echo, "future": True}
    if db_uri.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in db_uri or db_uri in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(pool_pre_ping=True, pool_recycle=280)
    return create_engine(db_uri, **kwargs)


def make_session_factory(eng: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=eng,
        future=True,
    )


engine: Engine = make_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)

SessionLocal = make_session_factory(engine)
