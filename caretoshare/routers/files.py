"""
files.py

Shared file API.

The bytes go to the uploader's Google Drive; this service stores the Drive
references plus metadata, visibility and engagement counters.

Provides:
- upload (multipart) and share-from-Google-Photos
- Google Photos listing
- recent / popular / category listings (public files only)
- my files with totals
- single file (view counter), download counter, delete
- likes (toggle, status) and comments (list, add, delete)

Design:
- visibility is enforced for every single-file read and engagement call
- anonymous callers only ever see public files
- Drive / Photos failures surface as UpstreamFailure

Related:
- caretoshare.services.files       : visibility rules, listings
- caretoshare.services.engagement  : likes / comments
- caretoshare.services.google      : Drive / Photos clients
"""

import logging
import math
import os
import uuid

from fastapi import APIRouter, Depends, File as FileParam, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from caretoshare.core.config import settings
from caretoshare.core.deps import (
    get_db, get_current_user, get_optional_user, get_google_token, get_optional_google_token,
    get_storage, get_photos,
)
from caretoshare.core.errors import InvalidInput, UpstreamFailure
from caretoshare.db.transaction import transaction
from caretoshare.models.file import FileVisibility
from caretoshare.models.user import User
from caretoshare.schemas.file import (
    CommentCreateRequest, CommentResponse, FileResponse, FileStats, LikeStatus, SharePhotoRequest, SortOption,
)
from caretoshare.services import engagement
from caretoshare.services import files as file_service
from caretoshare.services.category import parse_category_filter
from caretoshare.services.google import DriveStorage, PhotosClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


def _file_list(files) -> list[FileResponse]:
    return [FileResponse.model_validate(f) for f in files]


"""
Upload API

- multipart form: file, title, description, visibility, class_id
- the delegated Google token comes from the user record or X-Google-Token
- class visibility requires membership in the target class
- title and class target are checked before anything is sent to Drive

"""
@router.post("/upload", status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = FileParam(...),
    title: str = Form(...),
    description: str | None = Form(default=None),
    visibility: FileVisibility = Form(default=FileVisibility.PUBLIC),
    class_id: uuid.UUID | None = Form(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    google_token: str = Depends(get_google_token),
    storage: DriveStorage = Depends(get_storage),
):
    file_service.validate_upload_target(
        db, owner=current_user, title=title, visibility=visibility, class_id=class_id,
    )

    data = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    if not data:
        raise InvalidInput("No file uploaded")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise InvalidInput("File exceeds the upload size limit")

    file_name = file.filename or "upload"
    mime_type = file.content_type or "application/octet-stream"

    stored = storage.upload(data, file_name, mime_type, google_token)

    with transaction(db):
        record = file_service.create_file_record(
            db,
            owner=current_user,
            stored=stored,
            title=title,
            description=description,
            file_name=file_name,
            mime_type=mime_type,
            visibility=visibility,
            class_id=class_id,
        )
    db.refresh(record)
    return {"message": "File uploaded", "data": FileResponse.model_validate(record)}


@router.get("/recent")
def recent_files(db: Session = Depends(get_db)):
    return {"data": _file_list(file_service.recent_public(db, settings.RECENT_LIMIT))}


@router.get("/popular")
def popular_files(db: Session = Depends(get_db)):
    return {"data": _file_list(file_service.popular_public(db, settings.POPULAR_LIMIT))}


@router.get("/category")
def files_by_category(
    category: str | None = None,
    sort: SortOption = "newest",
    db: Session = Depends(get_db),
):
    try:
        parsed = parse_category_filter(category)
    except ValueError as e:
        raise InvalidInput(str(e))
    return {"data": _file_list(file_service.browse_public(db, category=parsed, sort=sort))}


@router.get("/my-files")
def my_files(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    files = file_service.files_of_user(db, current_user.id, current_user)
    return {
        "data": {
            "files": _file_list(files),
            "stats": FileStats(**file_service.owner_stats(files)),
        }
    }


@router.get("/my-photos")
def my_photos(
    page_size: int = Query(default=50, ge=1, le=100),
    page_token: str | None = None,
    google_token: str = Depends(get_google_token),
    photos: PhotosClient = Depends(get_photos),
):
    return {"data": photos.list_photos(google_token, page_size=page_size, page_token=page_token)}


"""
Share a Google Photos item

- only Google Photos content URLs are fetched, capped at MAX_UPLOAD_BYTES
- title and class target are checked before the photo is fetched
- title defaults to the filename without its extension

"""
@router.post("/share-photo", status_code=status.HTTP_201_CREATED)
def share_photo(
    data: SharePhotoRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    google_token: str = Depends(get_google_token),
    storage: DriveStorage = Depends(get_storage),
    photos: PhotosClient = Depends(get_photos),
):
    title = data.title or os.path.splitext(data.filename)[0]
    file_service.validate_upload_target(
        db, owner=current_user, title=title, visibility=data.visibility, class_id=data.class_id,
    )

    content = photos.fetch_bytes(data.photo_url, max_bytes=settings.MAX_UPLOAD_BYTES)
    stored = storage.upload(content, data.filename, data.mime_type, google_token)

    with transaction(db):
        record = file_service.create_file_record(
            db,
            owner=current_user,
            stored=stored,
            title=title,
            description=data.description,
            file_name=data.filename,
            mime_type=data.mime_type,
            visibility=data.visibility,
            class_id=data.class_id,
        )
    db.refresh(record)
    return {"message": "Photo shared", "data": FileResponse.model_validate(record)}


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        file = engagement.delete_comment(db, comment_id, current_user)
    return {
        "message": "Comment deleted",
        "data": {"comment_count": file.comment_count if file else 0},
    }


@router.get("/{file_id}")
def get_file(
    file_id: uuid.UUID,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    with transaction(db):
        file = file_service.get_visible_file(db, file_id, viewer)
        file_service.record_view(db, file)
    db.refresh(file)
    return {"data": FileResponse.model_validate(file)}


@router.post("/{file_id}/download")
def record_download(
    file_id: uuid.UUID,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    with transaction(db):
        file = file_service.get_visible_file(db, file_id, viewer)
        file_service.record_download(db, file)
    db.refresh(file)
    return {"data": {"downloads": file.downloads, "download_url": file.download_url}}


"""
Delete API

- owner only
- Drive deletion is best effort: a Drive failure is logged and the
  metadata is still removed
- the Drive token resolves the same way as for upload (cached, then X-Google-Token)

"""
@router.delete("/{file_id}")
def delete_file(
    file_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    google_token: str | None = Depends(get_optional_google_token),
    storage: DriveStorage = Depends(get_storage),
):
    with transaction(db):
        file = file_service.get_file(db, file_id)
        drive_id = file.drive_id
        file_service.delete_file_record(db, file, current_user)

    if google_token:
        try:
            storage.delete(drive_id, google_token)
        except UpstreamFailure as e:
            logger.warning("drive delete failed file=%s drive_id=%s: %s", file_id, drive_id, e.message)

    return {"message": "File deleted successfully"}


# ---------------------------------------------------------------------------
# likes


@router.post("/{file_id}/like")
def toggle_like(
    file_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        file = file_service.get_visible_file(db, file_id, current_user)
        liked = engagement.toggle_like(db, file, current_user)
        like_count = file.like_count
    return {"data": LikeStatus(liked=liked, like_count=like_count)}


@router.get("/{file_id}/like-status")
def like_status(
    file_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    file = file_service.get_visible_file(db, file_id, current_user)
    return {"data": LikeStatus(liked=engagement.has_liked(db, file.id, current_user), like_count=file.like_count)}


# ---------------------------------------------------------------------------
# comments


@router.get("/{file_id}/comments")
def list_comments(
    file_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    file = file_service.get_visible_file(db, file_id, viewer)
    comments, total = engagement.list_comments(db, file.id, page=page, limit=limit)
    return {
        "data": [CommentResponse.model_validate(c) for c in comments],
        "meta": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


@router.post("/{file_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    file_id: uuid.UUID,
    data: CommentCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        file = file_service.get_visible_file(db, file_id, current_user)
        comment = engagement.add_comment(db, file, current_user, data.text)
        comment_count = file.comment_count
    db.refresh(comment)
    return {
        "message": "Comment added",
        "data": CommentResponse.model_validate(comment),
        "meta": {"comment_count": comment_count},
    }
