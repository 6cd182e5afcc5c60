from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# Public view of a user; never carries OAuth tokens.
class UserSummary(BaseModel):
    id: UUID
    name: str
    username: str
    avatar: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserSummary):
    email: str


class UserSearchRow(UserSummary):
    file_count: int = 0
    total_downloads: int = 0


class ProfileUpdateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=1)
