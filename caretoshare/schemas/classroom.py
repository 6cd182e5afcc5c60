from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from caretoshare.models.classroom import Class, ClassVisibility
from caretoshare.schemas.file import FileResponse
from caretoshare.schemas.user import UserSummary
from caretoshare.services import membership


class ClassCreateRequest(BaseModel):
    name: str
    description: str | None = None
    visibility: ClassVisibility = ClassVisibility.PUBLIC
    thumbnail: str | None = None
    password: str | None = None


class ClassUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    visibility: ClassVisibility | None = None
    thumbnail: str | None = None
    password: str | None = None


class JoinClassRequest(BaseModel):
    password: str | None = None


class JoinByCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    password: str | None = None


class RequestToJoinRequest(BaseModel):
    message: str | None = Field(default=None, max_length=500)


class JoinRequestResponse(BaseModel):
    user: UserSummary
    message: str | None
    requested_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Password material is never part of any response.
class ClassSummary(BaseModel):
    id: UUID
    name: str
    description: str
    thumbnail: str
    class_code: str
    visibility: ClassVisibility
    creator: UserSummary
    member_count: int
    file_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_class(cls, klass: Class) -> "ClassSummary":
        return cls(
            id=klass.id,
            name=klass.name,
            description=klass.description,
            thumbnail=klass.thumbnail,
            class_code=klass.class_code,
            visibility=klass.visibility,
            creator=UserSummary.model_validate(klass.creator),
            member_count=len(membership.member_ids(klass)),
            file_count=klass.file_count,
            created_at=klass.created_at,
            updated_at=klass.updated_at,
        )


class ClassDetail(ClassSummary):
    crs: list[UserSummary]
    members: list[UserSummary]
    join_requests: list[JoinRequestResponse] | None = None
    files: list[FileResponse] = []
    is_member: bool
    is_cr: bool
    is_creator: bool

    @classmethod
    def from_class_for(cls, klass: Class, viewer, files=()) -> "ClassDetail":
        summary = ClassSummary.from_class(klass)
        viewer_is_cr = membership.is_cr(klass, viewer)
        cr_ids = membership.cr_ids(klass)
        return cls(
            **summary.model_dump(),
            crs=[UserSummary.model_validate(m.user) for m in klass.memberships if m.user_id in cr_ids],
            members=[UserSummary.model_validate(m.user) for m in klass.memberships],
            join_requests=(
                [JoinRequestResponse.model_validate(r) for r in klass.join_requests] if viewer_is_cr else None
            ),
            files=[FileResponse.model_validate(f) for f in files],
            is_member=membership.is_member(klass, viewer),
            is_cr=viewer_is_cr,
            is_creator=membership.is_creator(klass, viewer),
        )
