"""Schemas for user records: public projection, path params, and partial updates."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from userhub.schemas.auth import (
    Role,
    check_email,
    check_name,
    check_password,
    check_role,
)


class UserPublic(BaseModel):
    """User record as returned to clients (never includes the password digest)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: Role
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserIdPath(BaseModel):
    """The {id} path parameter, coerced to a positive integer."""

    id: int

    @field_validator("id", mode="before")
    @classmethod
    def coerce_positive_int(cls, v: Any) -> int:
        try:
            value = int(str(v).strip())
        except (TypeError, ValueError):
            value = 0
        if isinstance(v, bool) or value <= 0:
            raise PydanticCustomError(
                "invalid_user_id", "User ID must be a positive integer"
            )
        return value


class UserUpdateRequest(BaseModel):
    """Partial update; every field optional, same constraints as sign-up."""

    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: Role | None = None

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str | None) -> str | None:
        return None if v is None else check_name(v)

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str | None) -> str | None:
        return None if v is None else check_email(v)

    @field_validator("password")
    @classmethod
    def clean_password(cls, v: str | None) -> str | None:
        return None if v is None else check_password(v)

    @field_validator("role", mode="before")
    @classmethod
    def clean_role(cls, v: object) -> object:
        return None if v is None else check_role(v)

    def changes(self) -> dict[str, Any]:
        """Only the fields the client actually sent with a value."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class UserResponse(BaseModel):
    message: str
    user: UserPublic


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    message: str
    users: list[UserPublic] = Field(default_factory=list)
