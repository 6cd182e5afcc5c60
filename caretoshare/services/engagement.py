"""
services/engagement.py

Likes and comments on shared files.

The cached counters on File are always recomputed from the ledger rows
after a write (count(*)), so two concurrent writers converge on the true
value instead of drifting.

"""

import logging
import uuid
from typing import Any

from sqlalchemy import select, func, desc
from sqlalchemy.orm import Session

from caretoshare.core.errors import Forbidden, InvalidInput, NotFound
from caretoshare.models.file import Comment, File, FileLike
from caretoshare.services.membership import identity_key

logger = logging.getLogger(__name__)

COMMENT_MAX_LENGTH = 500


def count_likes(db: Session, file_id: uuid.UUID) -> int:
    return db.scalar(select(func.count()).select_from(FileLike).where(FileLike.file_id == file_id)) or 0


def count_comments(db: Session, file_id: uuid.UUID) -> int:
    return db.scalar(select(func.count()).select_from(Comment).where(Comment.file_id == file_id)) or 0


def has_liked(db: Session, file_id: uuid.UUID, user: Any) -> bool:
    key = identity_key(user)
    return db.scalar(
        select(FileLike.id).where(FileLike.file_id == file_id, FileLike.user_id == key)
    ) is not None


def toggle_like(db: Session, file: File, user: Any) -> bool:
    """Like or unlike; returns the new liked state."""
    key = identity_key(user)
    existing = db.scalar(select(FileLike).where(FileLike.file_id == file.id, FileLike.user_id == key))
    if existing is not None:
        db.delete(existing)
        liked = False
    else:
        db.add(FileLike(file_id=file.id, user_id=key))
        liked = True
    db.flush()

    file.like_count = count_likes(db, file.id)
    db.flush()
    return liked


def list_comments(db: Session, file_id: uuid.UUID, *, page: int, limit: int) -> tuple[list[Comment], int]:
    comments = db.scalars(
        select(Comment)
        .where(Comment.file_id == file_id)
        .order_by(desc(Comment.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(comments), count_comments(db, file_id)


def add_comment(db: Session, file: File, author: Any, text: str) -> Comment:
    text = (text or "").strip()
    if not text:
        raise InvalidInput("Comment text is required")
    if len(text) > COMMENT_MAX_LENGTH:
        raise InvalidInput(f"Comment must be {COMMENT_MAX_LENGTH} characters or less")

    comment = Comment(file_id=file.id, user_id=identity_key(author), text=text)
    db.add(comment)
    db.flush()

    file.comment_count = count_comments(db, file.id)
    db.flush()
    logger.info("comment added id=%s file=%s", comment.id, file.id)
    return comment


def delete_comment(db: Session, comment_id: uuid.UUID, actor: Any) -> File | None:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != identity_key(actor):
        raise Forbidden("Not authorized to delete this comment")

    file_id = comment.file_id
    db.delete(comment)
    db.flush()

    file = db.get(File, file_id)
    if file is not None:
        file.comment_count = count_comments(db, file_id)
        db.flush()
    logger.info("comment deleted id=%s file=%s", comment_id, file_id)
    return file
