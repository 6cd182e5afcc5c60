"""
security.py

Low-level security helpers: secret hashing and JWT issue/verify.

No routing or business rules live here.

Provides:
- private-class password hashing and verification (bcrypt)
- access token issue
- refresh token issue / decode

Design:
- access and refresh tokens use separate secrets
- refresh tokens carry a version (rtv) so the server can revoke them
- expiry is computed in UTC

Related:
- caretoshare.core.config      : secrets and lifetimes
- caretoshare.core.deps        : access token verification
- caretoshare.routers.auth     : login / refresh / logout
- caretoshare.services.membership : private-class passwords
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Literal

from jose import jwt, JWTError
from passlib.context import CryptContext

from caretoshare.core.config import settings


# deprecated="auto" keeps the door open for a future scheme change
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_secret(secret: str) -> str:
    return pwd_context.hash(secret)


def verify_secret(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


"""
Shared token builder

- subject(sub): user id
- token_type: access or refresh
- exp: expiry as a UTC timestamp
- extra: e.g. the refresh token version (rtv)

"""

def _create_token(*, subject: str, token_type: Literal["access", "refresh"],
                  expires_delta: timedelta, secret: str, extra: Optional[dict] = None) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    payload = {
        "sub": subject,
        "type": token_type,
        "exp": int(expire.timestamp()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, secret, algorithm=settings.ALGORITHM)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        subject=subject,
        token_type="access",
        expires_delta=expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        secret=settings.SECRET_KEY,
    )


def create_refresh_token(subject: str, refresh_token_version: int, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        subject=subject,
        token_type="refresh",
        expires_delta=expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        secret=settings.REFRESH_SECRET_KEY,
        extra={"rtv": refresh_token_version},
    )


"""
Refresh token decode

- checks signature, expiry and type == refresh
- returns (user_id, rtv)
- raises JWTError when invalid

"""

def decode_refresh_token(token: str) -> tuple[str, int]:
    payload = jwt.decode(token, settings.REFRESH_SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "refresh":
        raise JWTError("Not a refresh token")
    sub = payload["sub"]
    rtv = int(payload.get("rtv", -1))
    return sub, rtv
