"""
classes.py

Class (study group) API.

Creating, discovering and joining classes, and managing their members
and CRs. Every rule lives in caretoshare.services.membership; this module
only loads entities, calls the service and commits.

Provides:
- create / update / delete a class
- discover, my classes, lookup by code, detail, class files
- join (public or password), join by code, request to join
- approve / reject requests, add / remove CR, remove member, leave

Related:
- caretoshare.services.membership : membership and role rules
- caretoshare.services.files      : class-scoped file listing
- caretoshare.schemas.classroom   : request / response shapes
"""

import math
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func, or_, desc
from sqlalchemy.orm import Session

from caretoshare.core.config import settings
from caretoshare.core.deps import get_db, get_current_user
from caretoshare.core.errors import Forbidden
from caretoshare.db.search import icontains
from caretoshare.db.transaction import transaction
from caretoshare.models.classroom import Class, ClassMembership, ClassVisibility
from caretoshare.models.user import User
from caretoshare.schemas.classroom import (
    ClassCreateRequest, ClassUpdateRequest, ClassSummary, ClassDetail,
    JoinClassRequest, JoinByCodeRequest, RequestToJoinRequest, JoinRequestResponse,
)
from caretoshare.schemas.file import FileResponse
from caretoshare.services import membership
from caretoshare.services.files import class_files

router = APIRouter(prefix="/classes", tags=["classes"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_class(
    data: ClassCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db, conflict_message="Class code collision, please retry"):
        klass = membership.create_class(
            db,
            creator=current_user,
            name=data.name,
            description=data.description,
            visibility=data.visibility,
            thumbnail=data.thumbnail,
            password=data.password,
        )
    db.refresh(klass)
    return {"message": "Class created", "data": ClassDetail.from_class_for(klass, current_user)}


"""
Class discovery

- every class, public and private (private ones need a password to join)
- optional case-insensitive search on name / description / code
- newest first, paginated

"""
@router.get("/discover")
def discover_classes(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = select(Class)
    count_stmt = select(func.count()).select_from(Class)
    if search:
        cond = or_(
            icontains(Class.name, search),
            icontains(Class.description, search),
            icontains(Class.class_code, search),
        )
        stmt = stmt.where(cond)
        count_stmt = count_stmt.where(cond)

    classes = db.scalars(
        stmt.order_by(desc(Class.created_at)).offset((page - 1) * limit).limit(limit)
    ).unique().all()
    total = db.scalar(count_stmt) or 0

    return {
        "data": [ClassSummary.from_class(c) for c in classes],
        "meta": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


@router.get("/my")
def my_classes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    member_of = select(ClassMembership.class_id).where(ClassMembership.user_id == current_user.id)
    classes = db.scalars(
        select(Class)
        .where(or_(Class.creator_id == current_user.id, Class.id.in_(member_of)))
        .order_by(desc(Class.updated_at))
    ).unique().all()

    created = [ClassSummary.from_class(c) for c in classes if membership.is_creator(c, current_user)]
    joined = [ClassSummary.from_class(c) for c in classes if not membership.is_creator(c, current_user)]
    return {"data": {"created": created, "joined": joined}}


@router.get("/code/{code}")
def get_class_by_code(
    code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    klass = membership.get_class_by_code(db, code)
    return {"data": ClassSummary.from_class(klass)}


@router.post("/join-by-code")
def join_by_code(
    data: JoinByCodeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.join_by_code(db, current_user, data.code, password=data.password)
    db.refresh(klass)
    return {"message": "Joined class successfully", "data": ClassSummary.from_class(klass)}


"""
Class detail

- private classes are visible to members only
- includes creator, CRs, members and the latest class files
- pending join requests are included for CRs only

"""
@router.get("/{class_id}")
def get_class(
    class_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    klass = membership.get_class(db, class_id)
    if klass.visibility == ClassVisibility.PRIVATE and not membership.is_member(klass, current_user):
        raise Forbidden("This is a private class")

    files = []
    if membership.is_member(klass, current_user):
        files = class_files(db, klass, current_user, limit=settings.CLASS_DETAIL_FILES_LIMIT)
    return {"data": ClassDetail.from_class_for(klass, current_user, files)}


@router.get("/{class_id}/files")
def list_class_files(
    class_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    klass = membership.get_class(db, class_id)
    files = class_files(db, klass, current_user)
    return {"data": [FileResponse.model_validate(f) for f in files]}


@router.get("/{class_id}/requests")
def list_join_requests(
    class_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    klass = membership.get_class(db, class_id)
    if not membership.is_cr(klass, current_user):
        raise Forbidden("Only CRs can view join requests")
    return {"data": [JoinRequestResponse.model_validate(r) for r in klass.join_requests]}


@router.post("/{class_id}/join")
def join_class(
    class_id: uuid.UUID,
    data: JoinClassRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    password = data.password if data else None
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.join_class(db, klass, current_user, password=password)
    return {"message": "Joined class successfully", "data": {"status": "joined"}}


@router.post("/{class_id}/request", status_code=status.HTTP_201_CREATED)
def request_to_join(
    class_id: uuid.UUID,
    data: RequestToJoinRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db, conflict_message="Join request already pending"):
        klass = membership.get_class(db, class_id)
        request = membership.request_to_join(db, klass, current_user, message=data.message if data else None)
    db.refresh(request)
    return {"message": "Join request sent", "data": JoinRequestResponse.model_validate(request)}


@router.post("/{class_id}/approve/{user_id}")
def approve_request(
    class_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.approve_request(db, klass, current_user, user_id)
    return {"message": "Join request approved"}


@router.post("/{class_id}/reject/{user_id}")
def reject_request(
    class_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.reject_request(db, klass, current_user, user_id)
    return {"message": "Join request rejected"}


@router.post("/{class_id}/add-cr/{user_id}")
def add_cr(
    class_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.add_cr(db, klass, current_user, user_id)
    return {"message": "CR added successfully"}


@router.post("/{class_id}/remove-cr/{user_id}")
def remove_cr(
    class_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.remove_cr(db, klass, current_user, user_id)
    return {"message": "CR removed successfully"}


@router.post("/{class_id}/remove-member/{user_id}")
def remove_member(
    class_id: uuid.UUID,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.remove_member(db, klass, current_user, user_id)
    return {"message": "Member removed successfully"}


@router.post("/{class_id}/leave")
def leave_class(
    class_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.leave_class(db, klass, current_user)
    return {"message": "Left class successfully"}


@router.put("/{class_id}")
def update_class(
    class_id: uuid.UUID,
    data: ClassUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        membership.update_class(
            db,
            klass,
            current_user,
            name=data.name,
            description=data.description,
            visibility=data.visibility,
            thumbnail=data.thumbnail,
            password=data.password,
        )
    db.refresh(klass)
    return {"message": "Class updated", "data": ClassDetail.from_class_for(klass, current_user)}


"""
Class delete

- creator only
- every class-scoped file becomes public and loses its class link,
  in the same transaction as the delete

"""
@router.delete("/{class_id}")
def delete_class(
    class_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with transaction(db):
        klass = membership.get_class(db, class_id)
        released = membership.delete_class(db, klass, current_user)
    return {"message": "Class deleted successfully", "data": {"files_made_public": released}}
