"""
search.py

Site search over public files and users.

- case-insensitive substring match
- files: title, description, file name (public files only)
- users: display name, username; each row carries file / download totals
- an empty query returns empty results instead of everything
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caretoshare.core.config import settings
from caretoshare.core.deps import get_db
from caretoshare.schemas.file import FileResponse, SearchType
from caretoshare.schemas.user import UserSearchRow, UserSummary
from caretoshare.services import files as file_service

router = APIRouter(prefix="/search", tags=["search"])


@router.get("")
def search(
    q: str = "",
    type: SearchType = "all",
    db: Session = Depends(get_db),
):
    term = q.strip()
    files: list[FileResponse] = []
    users: list[UserSearchRow] = []

    if term and type in ("files", "all"):
        files = [
            FileResponse.model_validate(f)
            for f in file_service.search_files(db, term, settings.SEARCH_FILES_LIMIT)
        ]

    if term and type in ("users", "all"):
        found = file_service.search_users(db, term, settings.SEARCH_USERS_LIMIT)
        aggregates = file_service.user_aggregates(db, [u.id for u in found])
        for u in found:
            file_count, total_downloads = aggregates.get(u.id, (0, 0))
            users.append(UserSearchRow(
                **UserSummary.model_validate(u).model_dump(),
                file_count=file_count,
                total_downloads=total_downloads,
            ))

    return {"data": {"files": files, "users": users}, "meta": {"query": term, "type": type}}
