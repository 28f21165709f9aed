"""User model: forum accounts that own listings or moderate the directory."""

import uuid
from enum import StrEnum

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class UserRole(StrEnum):
    ADMIN = "admin"
    MODERATOR = "moderator"
    MEMBER = "member"


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.MODERATOR})


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    username: str = Field(max_length=60, unique=True, nullable=False, index=True)
    email: str = Field(max_length=320, nullable=False, index=True)
    password_hash: str = Field(nullable=False)
    role: UserRole = Field(default=UserRole.MEMBER)
    is_active: bool = Field(default=True)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


# ── Pydantic schemas ─────────────────────────────────────────

class UserCreate(SQLModel):
    username: str = Field(min_length=3, max_length=60)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: UserRole = UserRole.MEMBER


class UserUpdate(SQLModel):
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    role: UserRole | None = None
    is_active: bool | None = None


class UserRead(SQLModel):
    id: uuid.UUID
    username: str
    email: str
    role: UserRole
    is_active: bool
