"""
base.py

Declarative Base shared by every ORM model.

All tables (users, classes, files, comments, ...) register their metadata
on this Base, and Alembic reads the same metadata for autogenerate.

Related:
- caretoshare.models.*   : ORM models
- alembic/env.py         : migration metadata
"""

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
