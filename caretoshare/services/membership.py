"""
services/membership.py

Class membership and role rules.

Every join / leave / approve / reject / promote / demote / edit / delete
goes through this module. Routers load the Class, call one function here,
then commit (or roll back) the transaction.

Roles per (user, class):
- non-member
- pending request (optional)
- member
- CR (class representative)
- creator: permanent, implicitly a CR and a member

Design:
- no FastAPI imports; failures are caretoshare.core.errors exceptions
- identities are compared through identity_key(), never by object
- every mutation bumps Class.updated_at so the UPDATE goes through the
  version_id_col check and a concurrent writer gets StaleDataError
- the caller threads the resolved user in explicitly (no request globals)

Related:
- caretoshare.models.classroom : Class / ClassMembership / JoinRequest
- caretoshare.routers.classes  : HTTP surface
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from caretoshare.core.errors import (
    AlreadyCR, AlreadyMember, CannotRemoveCreator, CodeNotFound, CreatorCannotLeave,
    Forbidden, IncorrectPassword, InvalidInput, NotAMember, NotFound,
    PasswordRequired, RequestNotFound,
)
from caretoshare.core.security import hash_secret, verify_secret
from caretoshare.db.base import utcnow
from caretoshare.models.classroom import Class, ClassMembership, ClassVisibility, JoinRequest, MemberRole
from caretoshare.models.file import File, FileVisibility
from caretoshare.models.user import User
from caretoshare.services.class_code import generate_class_code, is_valid_class_code, normalize_class_code

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def identity_key(value: Any) -> uuid.UUID:
    """Canonical user id for a User, a UUID, or its string form."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError:
            raise InvalidInput(f"Invalid user id '{value}'")
    key = getattr(value, "id", None)
    if key is None:
        raise TypeError(f"Cannot derive a user identity from {type(value).__name__}")
    return identity_key(key)


def _touch(klass: Class) -> None:
    klass.updated_at = utcnow()


def _membership_for(klass: Class, key: uuid.UUID) -> ClassMembership | None:
    return next((m for m in klass.memberships if m.user_id == key), None)


def _request_for(klass: Class, key: uuid.UUID) -> JoinRequest | None:
    return next((r for r in klass.join_requests if r.user_id == key), None)


def member_ids(klass: Class) -> set[uuid.UUID]:
    return {m.user_id for m in klass.memberships} | {klass.creator_id}


def cr_ids(klass: Class) -> set[uuid.UUID]:
    """Appointed CRs; the creator is not listed here."""
    return {m.user_id for m in klass.memberships if m.role == MemberRole.CR and m.user_id != klass.creator_id}


def is_creator(klass: Class, user: Any) -> bool:
    return identity_key(user) == klass.creator_id


def is_cr(klass: Class, user: Any) -> bool:
    key = identity_key(user)
    return key == klass.creator_id or key in cr_ids(klass)


def is_member(klass: Class, user: Any) -> bool:
    key = identity_key(user)
    return key in member_ids(klass) or is_cr(klass, key)


def _require_cr(klass: Class, actor: Any, message: str) -> None:
    if not is_cr(klass, actor):
        raise Forbidden(message)


def _require_creator(klass: Class, actor: Any, message: str) -> None:
    if not is_creator(klass, actor):
        raise Forbidden(message)


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if len(name) < NAME_MIN_LENGTH:
        raise InvalidInput(f"Class name must be at least {NAME_MIN_LENGTH} characters")
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidInput(f"Class name must be at most {NAME_MAX_LENGTH} characters")
    return name


def _clean_description(description: str | None) -> str:
    description = (description or "").strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise InvalidInput(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return description


def _add_member(klass: Class, key: uuid.UUID) -> None:
    klass.memberships.append(ClassMembership(user_id=key, role=MemberRole.MEMBER))
    pending = _request_for(klass, key)
    if pending is not None:
        klass.join_requests.remove(pending)
    _touch(klass)


def _ensure_user_exists(db: Session, key: uuid.UUID) -> None:
    if db.get(User, key) is None:
        raise NotFound("User not found")


# ---------------------------------------------------------------------------
# lookups


def get_class(db: Session, class_id: uuid.UUID) -> Class:
    klass = db.get(Class, class_id)
    if klass is None:
        raise NotFound("Class not found")
    return klass


def get_class_by_code(db: Session, code: str) -> Class:
    normalized = normalize_class_code(code)
    if not is_valid_class_code(normalized):
        raise CodeNotFound()
    klass = db.scalar(select(Class).where(Class.class_code == normalized))
    if klass is None:
        raise CodeNotFound()
    return klass


# ---------------------------------------------------------------------------
# create


def create_class(
    db: Session,
    *,
    creator: User,
    name: str,
    description: str | None = None,
    visibility: ClassVisibility = ClassVisibility.PUBLIC,
    thumbnail: str | None = None,
    password: str | None = None,
) -> Class:
    name = _clean_name(name)
    description = _clean_description(description)

    if visibility == ClassVisibility.PRIVATE and not password:
        raise InvalidInput("Password is required for private classes")

    klass = Class(
        name=name,
        description=description,
        thumbnail=thumbnail or "",
        class_code=generate_class_code(db),
        visibility=visibility,
        password_hash=hash_secret(password) if visibility == ClassVisibility.PRIVATE else None,
        creator_id=creator.id,
    )
    # creator is a member from the start
    klass.memberships.append(ClassMembership(user_id=creator.id, role=MemberRole.MEMBER))
    db.add(klass)
    db.flush()

    logger.info("class created id=%s code=%s creator=%s", klass.id, klass.class_code, creator.id)
    return klass


# ---------------------------------------------------------------------------
# joining


def join_class(db: Session, klass: Class, user: Any, *, password: str | None = None) -> Class:
    """Direct join: immediate for public classes, password-gated for private ones."""
    key = identity_key(user)
    if is_member(klass, key):
        raise AlreadyMember()

    if klass.visibility == ClassVisibility.PRIVATE:
        if not password:
            raise PasswordRequired(class_name=klass.name, class_id=str(klass.id))
        if not verify_secret(password, klass.password_hash):
            raise IncorrectPassword()

    _add_member(klass, key)
    db.flush()
    logger.info("user joined class user=%s class=%s", key, klass.id)
    return klass


def join_by_code(db: Session, user: Any, code: str, *, password: str | None = None) -> Class:
    klass = get_class_by_code(db, code)
    return join_class(db, klass, user, password=password)


def request_to_join(db: Session, klass: Class, user: Any, *, message: str | None = None) -> JoinRequest:
    key = identity_key(user)
    if is_member(klass, key):
        raise AlreadyMember()

    existing = _request_for(klass, key)
    if existing is not None:
        return existing

    request = JoinRequest(user_id=key, message=(message or "").strip() or None)
    klass.join_requests.append(request)
    _touch(klass)
    db.flush()
    logger.info("join requested user=%s class=%s", key, klass.id)
    return request


def approve_request(db: Session, klass: Class, actor: Any, target: Any) -> Class:
    _require_cr(klass, actor, "Only CRs can approve join requests")
    key = identity_key(target)

    request = _request_for(klass, key)
    if request is None:
        raise RequestNotFound()

    klass.join_requests.remove(request)
    if not is_member(klass, key):
        klass.memberships.append(ClassMembership(user_id=key, role=MemberRole.MEMBER))
    _touch(klass)
    db.flush()
    logger.info("join approved user=%s class=%s by=%s", key, klass.id, identity_key(actor))
    return klass


def reject_request(db: Session, klass: Class, actor: Any, target: Any) -> Class:
    _require_cr(klass, actor, "Only CRs can reject join requests")
    key = identity_key(target)

    request = _request_for(klass, key)
    if request is not None:
        klass.join_requests.remove(request)
        _touch(klass)
        db.flush()
        logger.info("join rejected user=%s class=%s by=%s", key, klass.id, identity_key(actor))
    return klass


# ---------------------------------------------------------------------------
# roles


def add_cr(db: Session, klass: Class, actor: Any, target: Any) -> Class:
    _require_creator(klass, actor, "Only the class creator can add CRs")
    key = identity_key(target)
    _ensure_user_exists(db, key)

    if not is_member(klass, key):
        raise NotAMember()
    if is_cr(klass, key):
        raise AlreadyCR()

    membership = _membership_for(klass, key)
    membership.role = MemberRole.CR
    _touch(klass)
    db.flush()
    logger.info("cr added user=%s class=%s", key, klass.id)
    return klass


def remove_cr(db: Session, klass: Class, actor: Any, target: Any) -> Class:
    _require_creator(klass, actor, "Only the class creator can remove CRs")
    key = identity_key(target)
    _ensure_user_exists(db, key)

    membership = _membership_for(klass, key)
    if membership is not None and membership.role == MemberRole.CR:
        membership.role = MemberRole.MEMBER
        _touch(klass)
        db.flush()
        logger.info("cr removed user=%s class=%s", key, klass.id)
    return klass


def remove_member(db: Session, klass: Class, actor: Any, target: Any) -> Class:
    _require_cr(klass, actor, "Only CRs can remove members")
    key = identity_key(target)
    if key == klass.creator_id:
        raise CannotRemoveCreator()
    _ensure_user_exists(db, key)

    membership = _membership_for(klass, key)
    if membership is not None:
        klass.memberships.remove(membership)
        _touch(klass)
        db.flush()
        logger.info("member removed user=%s class=%s by=%s", key, klass.id, identity_key(actor))
    return klass


def leave_class(db: Session, klass: Class, user: Any) -> Class:
    key = identity_key(user)
    if key == klass.creator_id:
        raise CreatorCannotLeave()

    membership = _membership_for(klass, key)
    if membership is not None:
        klass.memberships.remove(membership)
        _touch(klass)
        db.flush()
        logger.info("user left class user=%s class=%s", key, klass.id)
    return klass


# ---------------------------------------------------------------------------
# edit / delete


def update_class(
    db: Session,
    klass: Class,
    actor: Any,
    *,
    name: str | None = None,
    description: str | None = None,
    visibility: ClassVisibility | None = None,
    thumbnail: str | None = None,
    password: str | None = None,
) -> Class:
    _require_cr(klass, actor, "Only CRs can update class")

    if name is not None:
        klass.name = _clean_name(name)
    if description is not None:
        klass.description = _clean_description(description)
    if thumbnail is not None:
        klass.thumbnail = thumbnail

    target = visibility if visibility is not None else klass.visibility
    if target == ClassVisibility.PRIVATE:
        if password:
            klass.password_hash = hash_secret(password)
        if not klass.password_hash:
            raise InvalidInput("Password is required for private classes")
    else:
        # public classes never keep a password
        klass.password_hash = None
    klass.visibility = target

    _touch(klass)
    db.flush()
    logger.info("class updated id=%s by=%s", klass.id, identity_key(actor))
    return klass


def delete_class(db: Session, klass: Class, actor: Any) -> int:
    """Delete a class; its class-scoped files become public. Returns how many files moved."""
    _require_creator(klass, actor, "Only the creator can delete the class")

    class_files = db.scalars(select(File).where(File.class_id == klass.id)).all()
    for file in class_files:
        file.visibility = FileVisibility.PUBLIC
        file.class_id = None
    released = len(class_files)
    db.flush()

    class_id = klass.id
    db.delete(klass)
    db.flush()
    logger.info("class deleted id=%s files_released=%s", class_id, released)
    return released
