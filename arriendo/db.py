from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import settings


class Base(DeclarativeBase):
    pass


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across the threadpool FastAPI runs sync routes in
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
    future=True,
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def get_db():
    """
    One session per request.

    Lifecycle operations commit exactly once at the end. Any exception rolls
    the whole unit back so a rejected operation never leaves a partial write.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        db.info.clear()
        raise
    finally:
        db.close()
