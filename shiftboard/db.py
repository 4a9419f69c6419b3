# shiftboard/db.py
# SQLAlchemy setup: engine, sessions, Base and explicit model imports.

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from shiftboard.config import DATABASE_URL

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set")


def _engine_kwargs(url: str) -> dict:
    # SQLite (local runs, tests) does not take the QueuePool options
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 20,
        "max_overflow": 20,
        "pool_timeout": 60,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

from shiftboard.models import (  # noqa: E402,F401
    user,
    invitation_token,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
