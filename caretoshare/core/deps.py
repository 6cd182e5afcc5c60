from typing import Generator
import uuid

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from sqlalchemy import select

from caretoshare.core.config import settings
from caretoshare.core.errors import UpstreamFailure
from caretoshare.db.session import SessionLocal
from caretoshare.models.user import User
from caretoshare.services.google import DriveStorage, GoogleIdentityClient, PhotosClient

# Bearer scheme for Swagger "Authorize"; auto_error=False so public routes can
# resolve an optional caller.
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user(token: str, db: Session) -> User:
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )

        # access tokens only (refresh tokens are rejected)
        if payload.get("type") != "access":
            raise JWTError()

        sub = payload.get("sub")
        if not sub:
            raise JWTError()

        user_id = uuid.UUID(sub)

    except (JWTError, ValueError):
        raise _credentials_error("Could not validate credentials")

    user = db.scalar(select(User).where(User.id == user_id))
    if not user:
        raise _credentials_error("User not found")
    return user


def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if cred is None:
        raise _credentials_error("Authentication required")
    return _resolve_user(cred.credentials, db)


def get_optional_user(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    """Caller if a valid bearer token is present, None for anonymous requests."""
    if cred is None:
        return None
    return _resolve_user(cred.credentials, db)


def get_optional_google_token(
    current_user: User = Depends(get_current_user),
    x_google_token: str | None = Header(default=None),
) -> str | None:
    """Delegated Google token: the one cached at login, else the X-Google-Token header."""
    return current_user.google_access_token or x_google_token


def get_google_token(token: str | None = Depends(get_optional_google_token)) -> str:
    if not token:
        raise UpstreamFailure("Google Drive access required. Please re-login.", requires_reauth=True)
    return token


# External collaborators; overridden in tests through app.dependency_overrides.

def get_identity_client() -> GoogleIdentityClient:
    return GoogleIdentityClient()


def get_storage() -> DriveStorage:
    return DriveStorage()


def get_photos() -> PhotosClient:
    return PhotosClient()
