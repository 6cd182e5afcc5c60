"""
session.py

Engine and session factory.

One SessionLocal per request through the get_db dependency.

- pool_pre_ping=True catches connections dropped while idle
- SQLite (local / tests) needs check_same_thread=False because the
  TestClient serves requests from a worker thread

Related:
- caretoshare.core.config : DATABASE_URL
- caretoshare.core.deps   : get_db
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from caretoshare.core.config import settings


def make_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
