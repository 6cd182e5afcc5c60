"""
users.py

User profile API.

Provides:
- update own profile (display name, username)
- public profile of any user with their files

Design:
- a profile view only lists the files the viewer may see: everything for
  the owner, public files for everyone else
- OAuth tokens and email are never part of another user's profile

Related:
- caretoshare.services.users  : username rules
- caretoshare.services.files  : files_of_user, owner_stats
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caretoshare.core.deps import get_db, get_current_user, get_optional_user
from caretoshare.core.errors import NotFound
from caretoshare.db.transaction import transaction
from caretoshare.models.user import User
from caretoshare.schemas.file import FileResponse, FileStats
from caretoshare.schemas.user import ProfileUpdateRequest, UserResponse, UserSummary
from caretoshare.services import files as file_service
from caretoshare.services.users import update_profile

router = APIRouter(prefix="/users", tags=["users"])


"""
Profile update API

- username: letters, digits and underscores, stored lowercase
- a username held by someone else is rejected with 409

"""
@router.put("/profile")
def update_my_profile(
    data: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db, conflict_message="Username already taken"):
        update_profile(db, current_user, name=data.name, username=data.username)
    db.refresh(current_user)
    return {"message": "Profile updated", "data": UserResponse.model_validate(current_user)}


@router.get("/{user_id}")
def get_user_profile(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    files = file_service.files_of_user(db, user.id, viewer)
    return {
        "data": {
            "user": UserSummary.model_validate(user),
            "files": [FileResponse.model_validate(f) for f in files],
            "stats": FileStats(**file_service.owner_stats(files)),
        }
    }
