"""
services/files.py

Visibility-scoped file index.

Retrieval rules:
- public  : anyone, including anonymous callers
- private : the owner only
- class   : members of the referenced class (creator / CRs included)

Public listings (recent, popular, category, search) only ever return
public files. Class listings go through the class membership check.

Related:
- caretoshare.services.membership : is_member for class-scoped files
- caretoshare.services.category   : category inference
- caretoshare.routers.files       : HTTP surface
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select, func, desc, asc, or_, update
from sqlalchemy.orm import Session

from caretoshare.core.errors import Forbidden, InvalidInput, NotFound
from caretoshare.db.search import icontains
from caretoshare.models.classroom import Class
from caretoshare.models.file import File, FileVisibility
from caretoshare.models.user import User
from caretoshare.services.category import category_from_filename
from caretoshare.services.membership import identity_key, is_member

logger = logging.getLogger(__name__)


SORT_OPTIONS = {
    "newest": desc(File.created_at),
    "oldest": asc(File.created_at),
    "downloads": desc(File.downloads),
    "name": asc(File.title),
}


@dataclass(frozen=True)
class StoredObject:
    """What the storage collaborator hands back after an upload."""
    drive_id: str
    download_url: str
    web_view_link: str | None
    thumbnail_url: str | None
    size: int


def get_file(db: Session, file_id: uuid.UUID) -> File:
    file = db.get(File, file_id)
    if file is None:
        raise NotFound("File not found")
    return file


def can_view(db: Session, file: File, viewer: Any | None) -> bool:
    if file.visibility == FileVisibility.PUBLIC:
        return True
    if viewer is None:
        return False
    key = identity_key(viewer)
    if file.uploaded_by == key:
        return True
    if file.visibility == FileVisibility.CLASS and file.class_id is not None:
        klass = db.get(Class, file.class_id)
        return klass is not None and is_member(klass, key)
    return False


def get_visible_file(db: Session, file_id: uuid.UUID, viewer: Any | None) -> File:
    file = get_file(db, file_id)
    if not can_view(db, file, viewer):
        raise Forbidden("You do not have access to this file")
    return file


def refresh_class_file_count(db: Session, class_id: uuid.UUID | None) -> None:
    if class_id is None:
        return
    count = (
        select(func.count())
        .select_from(File)
        .where(File.class_id == class_id, File.visibility == FileVisibility.CLASS)
        .scalar_subquery()
    )
    # Core UPDATE: a counter refresh must not collide with the class version check
    db.execute(update(Class.__table__).where(Class.__table__.c.id == class_id).values(file_count=count))


def validate_upload_target(
    db: Session,
    *,
    owner: Any,
    title: str | None,
    visibility: FileVisibility,
    class_id: uuid.UUID | None,
) -> tuple[str, uuid.UUID | None]:
    """Checks an upload before any bytes leave for storage; returns (title, class_id)."""
    title = (title or "").strip()
    if not title:
        raise InvalidInput("Title is required")

    if visibility != FileVisibility.CLASS:
        return title, None

    if class_id is None:
        raise InvalidInput("class_id is required for class visibility")
    klass = db.get(Class, class_id)
    if klass is None:
        raise NotFound("Class not found")
    if not is_member(klass, owner):
        raise Forbidden("Only members can share files to this class")
    return title, class_id


def create_file_record(
    db: Session,
    *,
    owner: User,
    stored: StoredObject,
    title: str,
    description: str | None,
    file_name: str,
    mime_type: str,
    visibility: FileVisibility = FileVisibility.PUBLIC,
    class_id: uuid.UUID | None = None,
) -> File:
    title, class_id = validate_upload_target(
        db, owner=owner, title=title, visibility=visibility, class_id=class_id,
    )

    file = File(
        title=title,
        description=(description or "").strip(),
        file_name=file_name,
        file_size=stored.size,
        mime_type=mime_type,
        category=category_from_filename(file_name),
        visibility=visibility,
        class_id=class_id,
        drive_id=stored.drive_id,
        download_url=stored.download_url,
        web_view_link=stored.web_view_link,
        thumbnail_url=stored.thumbnail_url,
        uploaded_by=owner.id,
    )
    db.add(file)
    db.flush()
    refresh_class_file_count(db, class_id)

    logger.info("file stored id=%s owner=%s visibility=%s", file.id, owner.id, visibility.value)
    return file


def delete_file_record(db: Session, file: File, actor: Any) -> None:
    if file.uploaded_by != identity_key(actor):
        raise Forbidden("Not authorized to delete this file")
    class_id = file.class_id
    db.delete(file)
    db.flush()
    refresh_class_file_count(db, class_id)


def record_view(db: Session, file: File) -> File:
    file.views = File.views + 1
    db.flush()
    db.refresh(file)
    return file


def record_download(db: Session, file: File) -> File:
    file.downloads = File.downloads + 1
    db.flush()
    db.refresh(file)
    return file


# ---------------------------------------------------------------------------
# listings


def recent_public(db: Session, limit: int) -> list[File]:
    return list(db.scalars(
        select(File)
        .where(File.visibility == FileVisibility.PUBLIC)
        .order_by(desc(File.created_at))
        .limit(limit)
    ).all())


def popular_public(db: Session, limit: int) -> list[File]:
    return list(db.scalars(
        select(File)
        .where(File.visibility == FileVisibility.PUBLIC)
        .order_by(desc(File.downloads), desc(File.created_at))
        .limit(limit)
    ).all())


def browse_public(db: Session, *, category=None, sort: str = "newest") -> list[File]:
    if sort not in SORT_OPTIONS:
        raise InvalidInput(f"sort must be one of {', '.join(SORT_OPTIONS)}")
    stmt = select(File).where(File.visibility == FileVisibility.PUBLIC)
    if category is not None:
        stmt = stmt.where(File.category == category)
    return list(db.scalars(stmt.order_by(SORT_OPTIONS[sort])).all())


def class_files(db: Session, klass: Class, viewer: Any, *, limit: int | None = None) -> list[File]:
    if not is_member(klass, viewer):
        raise Forbidden("Only members can view class files")
    stmt = (
        select(File)
        .where(File.class_id == klass.id, File.visibility == FileVisibility.CLASS)
        .order_by(desc(File.created_at))
    )
    if limit:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt).all())


def files_of_user(db: Session, owner_id: uuid.UUID, viewer: Any | None) -> list[File]:
    """A user's files as seen by viewer: everything for the owner, public ones otherwise."""
    stmt = select(File).where(File.uploaded_by == owner_id)
    if viewer is None or identity_key(viewer) != owner_id:
        stmt = stmt.where(File.visibility == FileVisibility.PUBLIC)
    return list(db.scalars(stmt.order_by(desc(File.created_at))).all())


def owner_stats(files: list[File]) -> dict:
    return {
        "total_files": len(files),
        "total_downloads": sum(f.downloads for f in files),
        "total_views": sum(f.views for f in files),
    }


def user_aggregates(db: Session, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, tuple[int, int]]:
    """user_id -> (file_count, total_downloads)"""
    if not user_ids:
        return {}
    rows = db.execute(
        select(File.uploaded_by, func.count(File.id), func.coalesce(func.sum(File.downloads), 0))
        .where(File.uploaded_by.in_(user_ids))
        .group_by(File.uploaded_by)
    ).all()
    return {uid: (int(count), int(downloads)) for uid, count, downloads in rows}


def search_files(db: Session, term: str, limit: int) -> list[File]:
    return list(db.scalars(
        select(File)
        .where(
            File.visibility == FileVisibility.PUBLIC,
            or_(
                icontains(File.title, term),
                icontains(File.description, term),
                icontains(File.file_name, term),
            ),
        )
        .order_by(desc(File.created_at))
        .limit(limit)
    ).all())


def search_users(db: Session, term: str, limit: int) -> list[User]:
    return list(db.scalars(
        select(User)
        .where(or_(icontains(User.name, term), icontains(User.username, term)))
        .order_by(User.username)
        .limit(limit)
    ).all())


def site_stats(db: Session) -> dict:
    return {
        "total_files": db.scalar(select(func.count()).select_from(File)) or 0,
        "total_users": db.scalar(select(func.count()).select_from(User)) or 0,
        "total_downloads": int(db.scalar(select(func.coalesce(func.sum(File.downloads), 0))) or 0),
    }
