"""
file.py

Shared file (content item) metadata and its engagement ledger.

The bytes live in Google Drive; only the Drive references are stored here.

- File     : metadata, visibility, counters
- FileLike : like-set, one row per (file, user)
- Comment  : append-only comments

like_count / comment_count are caches; they are always recomputed from
FileLike / Comment rows, never incremented blindly.

"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text, Uuid,
    Index, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caretoshare.db.base import Base, utcnow
from caretoshare.models.user import User


class FileVisibility(str, Enum):
    PUBLIC = "public"
    CLASS = "class"
    PRIVATE = "private"


class FileCategory(str, Enum):
    DOCUMENTS = "documents"
    PRESENTATIONS = "presentations"
    IMAGES = "images"
    VIDEOS = "videos"
    ARCHIVES = "archives"
    OTHER = "other"


class File(Base):
    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_visibility_created_at", "visibility", "created_at"),
        Index("ix_files_class_id", "class_id"),
        Index("ix_files_uploaded_by", "uploaded_by"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[FileCategory] = mapped_column(
        SAEnum(FileCategory, name="file_category", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=FileCategory.OTHER,
    )
    visibility: Mapped[FileVisibility] = mapped_column(
        SAEnum(FileVisibility, name="file_visibility", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=FileVisibility.PUBLIC,
    )
    class_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)

    drive_id: Mapped[str] = mapped_column(String(255), nullable=False)
    download_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    web_view_link: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    uploaded_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    downloads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    uploader: Mapped[User] = relationship(User, lazy="joined")
    likes: Mapped[list["FileLike"]] = relationship(cascade="all, delete-orphan")
    comments: Mapped[list["Comment"]] = relationship(cascade="all, delete-orphan")


class FileLike(Base):
    __tablename__ = "file_likes"
    __table_args__ = (
        UniqueConstraint("file_id", "user_id", name="uq_file_likes_file_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    file_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_file_id_created_at", "file_id", "created_at"),
        Index("ix_comments_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    file_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    text: Mapped[str] = mapped_column(String(500), nullable=False)
    parent_comment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("comments.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    author: Mapped[User] = relationship(User, lazy="joined")
