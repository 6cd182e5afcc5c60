"""
config.py

Application-wide settings loaded from environment variables / .env.

Every tunable the service reads lives here and nowhere else:
- database connection
- JWT secrets and token lifetimes
- refresh cookie options
- CORS origins
- Google identity / Drive / Photos endpoints and the outbound timeout
- upload and listing limits

Related:
- caretoshare.main            : CORS, logging level
- caretoshare.core.security   : JWT secrets / lifetimes
- caretoshare.db.session      : DATABASE_URL
- caretoshare.services.google : Google endpoints
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


# Undeclared variables in .env are ignored (extra="ignore").
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str
    TEST_DATABASE_URL: str | None = None

    SECRET_KEY: str
    REFRESH_SECRET_KEY: str
    ALGORITHM: str = "HS256"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Refresh cookie
    # - COOKIE_SECURE: True behind HTTPS only
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"
    COOKIE_DOMAIN: str | None = None

    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    LOG_LEVEL: str = "INFO"

    # production | development | test
    ENVIRONMENT: str = "production"

    # Google collaborators
    # GOOGLE_VERIFY_USERINFO: resolve the profile from Google's userinfo endpoint.
    # - False trusts the client-sent profile; only allowed in development / test
    GOOGLE_VERIFY_USERINFO: bool = True
    GOOGLE_USERINFO_URL: str = "https://www.googleapis.com/oauth2/v3/userinfo"
    GOOGLE_DRIVE_API_URL: str = "https://www.googleapis.com/drive/v3"
    GOOGLE_DRIVE_UPLOAD_URL: str = "https://www.googleapis.com/upload/drive/v3"
    GOOGLE_PHOTOS_API_URL: str = "https://photoslibrary.googleapis.com/v1"
    UPSTREAM_TIMEOUT_SECONDS: float = 30.0
    # share-photo only downloads from these hosts (exact or subdomain), over https
    GOOGLE_PHOTOS_CONTENT_HOSTS: List[str] = ["googleusercontent.com"]

    MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024

    CLASS_CODE_MAX_ATTEMPTS: int = 10

    RECENT_LIMIT: int = 12
    POPULAR_LIMIT: int = 8
    CLASS_DETAIL_FILES_LIMIT: int = 20
    SEARCH_FILES_LIMIT: int = 20
    SEARCH_USERS_LIMIT: int = 10

    @model_validator(mode="after")
    def trusted_login_only_outside_production(self) -> "Settings":
        if not self.GOOGLE_VERIFY_USERINFO and self.ENVIRONMENT not in ("development", "test"):
            raise ValueError("GOOGLE_VERIFY_USERINFO=false is only allowed when ENVIRONMENT is development or test")
        return self


# Created once at import time and shared across the app.
settings = Settings()
