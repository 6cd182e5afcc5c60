"""
services/users.py

User directory: create-or-update on Google login, username handling,
profile edits.

"""

import logging
import re
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from caretoshare.core.errors import InvalidInput, UsernameTaken
from caretoshare.models.user import User

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")

USERNAME_MAX_LENGTH = 50


@dataclass(frozen=True)
class ExternalIdentity:
    """What the identity collaborator hands over after a Google login."""
    subject: str
    email: str
    name: str
    avatar: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None


def username_taken(db: Session, username: str, *, exclude: User | None = None) -> bool:
    stmt = select(User.id).where(User.username == username)
    if exclude is not None:
        stmt = stmt.where(User.id != exclude.id)
    return db.scalar(stmt) is not None


def generate_username(db: Session, email: str, name: str) -> str:
    base = _NON_ALNUM_RE.sub("", email.split("@")[0].lower())
    if not base:
        base = _NON_ALNUM_RE.sub("", name.lower())
    base = (base or "user")[: USERNAME_MAX_LENGTH - 6]

    username = base
    counter = 1
    while username_taken(db, username):
        username = f"{base}{counter}"
        counter += 1
    return username


def upsert_from_identity(db: Session, identity: ExternalIdentity) -> tuple[User, bool]:
    """Returns (user, created)."""
    user = db.scalar(select(User).where(User.google_id == identity.subject))

    if user is None:
        user = User(
            google_id=identity.subject,
            email=identity.email,
            name=identity.name,
            username=generate_username(db, identity.email, identity.name),
            avatar=identity.avatar,
            google_access_token=identity.access_token,
            google_refresh_token=identity.refresh_token,
        )
        db.add(user)
        db.flush()
        logger.info("user created id=%s username=%s", user.id, user.username)
        return user, True

    user.google_access_token = identity.access_token
    if identity.refresh_token:
        user.google_refresh_token = identity.refresh_token
    if identity.avatar:
        user.avatar = identity.avatar
    db.flush()
    return user, False


def update_profile(db: Session, user: User, *, name: str, username: str) -> User:
    name = (name or "").strip()
    username = (username or "").strip()
    if not name or not username:
        raise InvalidInput("Name and username are required")

    if not _USERNAME_RE.match(username):
        raise InvalidInput("Username can only contain letters, numbers, and underscores")
    if len(username) > USERNAME_MAX_LENGTH:
        raise InvalidInput(f"Username must be at most {USERNAME_MAX_LENGTH} characters")

    username = username.lower()
    if username_taken(db, username, exclude=user):
        raise UsernameTaken()

    user.name = name
    user.username = username
    db.flush()
    return user
