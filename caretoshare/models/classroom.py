"""
classroom.py

Class (study group) models.

- Class           : the group itself, with a unique 6-character join code
- ClassMembership : one row per (class, user); role MEMBER or CR
- JoinRequest     : pending request-to-join, one per (class, user)

The creator is stored on Class.creator_id and also holds a MEMBER row.
Creator and CRs count as members.

Class.version is SQLAlchemy's version_id_col: every UPDATE of the class row
is conditional on the version the session loaded, so two requests mutating
the same class cannot silently overwrite each other.

"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text, Uuid,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caretoshare.db.base import Base, utcnow
from caretoshare.models.user import User


class ClassVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class MemberRole(str, Enum):
    MEMBER = "member"
    CR = "cr"


class Class(Base):
    __tablename__ = "classes"
    __table_args__ = (
        Index("ix_classes_visibility", "visibility"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    thumbnail: Mapped[str] = mapped_column(String(1024), nullable=False, default="")

    class_code: Mapped[str] = mapped_column(String(6), unique=True, index=True, nullable=False)

    visibility: Mapped[ClassVisibility] = mapped_column(
        SAEnum(ClassVisibility, name="class_visibility", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ClassVisibility.PUBLIC,
    )
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    creator_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), index=True, nullable=False)

    file_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    creator: Mapped[User] = relationship(User, lazy="joined")
    memberships: Mapped[list["ClassMembership"]] = relationship(
        back_populates="klass",
        cascade="all, delete-orphan",
        order_by="ClassMembership.joined_at",
    )
    join_requests: Mapped[list["JoinRequest"]] = relationship(
        back_populates="klass",
        cascade="all, delete-orphan",
        order_by="JoinRequest.requested_at",
    )

    __mapper_args__ = {"version_id_col": version}


class ClassMembership(Base):
    __tablename__ = "class_memberships"
    __table_args__ = (
        UniqueConstraint("class_id", "user_id", name="uq_class_memberships_class_user"),
        Index("ix_class_memberships_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    role: Mapped[MemberRole] = mapped_column(
        SAEnum(MemberRole, name="member_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    klass: Mapped[Class] = relationship(back_populates="memberships")
    user: Mapped[User] = relationship(User, lazy="joined")


class JoinRequest(Base):
    __tablename__ = "class_join_requests"
    __table_args__ = (
        UniqueConstraint("class_id", "user_id", name="uq_class_join_requests_class_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    klass: Mapped[Class] = relationship(back_populates="join_requests")
    user: Mapped[User] = relationship(User, lazy="joined")
