"""
auth.py

Authentication API.

Users sign in with Google; the server turns the Google identity into a
local User (create-or-update) and issues its own session credentials:
an access token in the response body and a refresh token in an HttpOnly
cookie.

Provides:
- Google login (create-or-update user, cache delegated tokens)
- verify the current access token
- refresh token rotation
- logout (refresh token revocation)

Design:
- access token travels in the Authorization header
- refresh token lives in an HttpOnly cookie
- refresh_token_version invalidates older refresh tokens on rotation / logout

Related:
- caretoshare.core.security   : JWT issue / decode
- caretoshare.core.deps       : get_current_user, identity client
- caretoshare.services.users  : upsert_from_identity
"""

import uuid
from jose import JWTError, ExpiredSignatureError
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import select

from caretoshare.core.deps import get_db, get_current_user, get_identity_client
from caretoshare.core.config import settings
from caretoshare.core.errors import Conflict, InvalidInput
from caretoshare.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
)

from caretoshare.models.user import User
from caretoshare.schemas.auth import GoogleLoginRequest, TokenResponse
from caretoshare.schemas.user import UserResponse
from caretoshare.services.google import GoogleIdentityClient
from caretoshare.services.users import ExternalIdentity, upsert_from_identity

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE_NAME = "refresh_token"


def _set_refresh_cookie(response: Response, user: User) -> None:
    refresh = create_refresh_token(subject=str(user.id), refresh_token_version=user.refresh_token_version)
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        domain=settings.COOKIE_DOMAIN,
        path="/",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(key=REFRESH_COOKIE_NAME, path="/", domain=settings.COOKIE_DOMAIN)


"""
Google login API

- the client finishes the Google OAuth flow and posts the access token
- with GOOGLE_VERIFY_USERINFO the profile is fetched from Google,
  otherwise the user_info sent by the client is used
- first login creates the user and derives a unique username
- later logins refresh the cached Google tokens and avatar

"""

@router.post("/google/token")
def google_login(
    data: GoogleLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    identity_client: GoogleIdentityClient = Depends(get_identity_client),
):
    if settings.GOOGLE_VERIFY_USERINFO:
        identity = identity_client.fetch_identity(data.access_token, data.refresh_token)
    else:
        if data.user_info is None:
            raise InvalidInput("Access token and user info required")
        identity = ExternalIdentity(
            subject=data.user_info.sub,
            email=data.user_info.email,
            name=data.user_info.name,
            avatar=data.user_info.picture,
            access_token=data.access_token,
            refresh_token=data.refresh_token,
        )

    try:
        user, created = upsert_from_identity(db, identity)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already registered to another Google account")
    except Exception:
        db.rollback()
        raise

    _set_refresh_cookie(response, user)

    return {
        "data": {
            "user": UserResponse.model_validate(user),
            "access_token": create_access_token(subject=str(user.id)),
            "token_type": "bearer",
            "created": created,
        }
    }


@router.get("/verify")
def verify(current_user: User = Depends(get_current_user)):
    return {"data": {"user": UserResponse.model_validate(current_user)}}


"""
Access token refresh API

- reads the refresh cookie
- rejects tokens whose version no longer matches the user
- rotates the refresh token on every use

"""

@router.post("/refresh")
def refresh(request: Request, response: Response, db: Session = Depends(get_db)):
    token = request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing refresh token")

    try:
        user_id, token_rtv = decode_refresh_token(token)
        user_uuid = uuid.UUID(user_id)
    except (ExpiredSignatureError, JWTError, ValueError):
        _clear_refresh_cookie(response)
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = db.scalar(select(User).where(User.id == user_uuid))
    if not user:
        _clear_refresh_cookie(response)
        raise HTTPException(status_code=401, detail="User not found")

    if token_rtv != user.refresh_token_version:
        _clear_refresh_cookie(response)
        raise HTTPException(status_code=401, detail="Refresh token revoked")

    try:
        user.refresh_token_version += 1
        db.commit()
        db.refresh(user)
    except Exception:
        db.rollback()
        raise

    _set_refresh_cookie(response, user)

    return {"data": TokenResponse(access_token=create_access_token(subject=str(user.id)))}


@router.post("/logout")
def logout(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        user.refresh_token_version += 1
        db.commit()
    except Exception:
        db.rollback()
        raise

    response = Response(status_code=204)
    _clear_refresh_cookie(response)
    return response
