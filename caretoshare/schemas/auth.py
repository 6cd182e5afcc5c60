from pydantic import BaseModel, EmailStr, Field


class GoogleUserInfo(BaseModel):
    sub: str = Field(..., min_length=1)
    email: EmailStr
    name: str = Field(..., min_length=1)
    picture: str | None = None


class GoogleLoginRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = None
    # ignored when GOOGLE_VERIFY_USERINFO is on
    user_info: GoogleUserInfo | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
