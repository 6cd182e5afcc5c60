from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from caretoshare.models.file import FileCategory, FileVisibility
from caretoshare.schemas.user import UserSummary


class FileResponse(BaseModel):
    id: UUID
    title: str
    description: str
    file_name: str
    file_size: int
    mime_type: str
    category: FileCategory
    visibility: FileVisibility
    class_id: UUID | None
    drive_id: str
    download_url: str
    web_view_link: str | None
    thumbnail_url: str | None
    uploader: UserSummary
    downloads: int
    views: int
    like_count: int
    comment_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FileStats(BaseModel):
    total_files: int
    total_downloads: int
    total_views: int


class SharePhotoRequest(BaseModel):
    photo_id: str | None = None
    photo_url: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    mime_type: str = Field(..., min_length=1)
    title: str | None = None
    description: str | None = None
    visibility: FileVisibility = FileVisibility.PUBLIC
    class_id: UUID | None = None


class CommentCreateRequest(BaseModel):
    text: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: UUID
    file_id: UUID
    text: str
    author: UserSummary
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LikeStatus(BaseModel):
    liked: bool
    like_count: int


SortOption = Literal["newest", "oldest", "downloads", "name"]
SearchType = Literal["files", "users", "all"]
