"""
user.py

User model.

Identity is anchored to the Google subject id (google_id). The username is
a unique, mutable, lowercase handle. Cached Google tokens are kept so the
server can call Drive / Photos on the user's behalf.

Users are never hard-deleted.

"""

import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from caretoshare.db.base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    google_id: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    google_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    google_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    refresh_token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
