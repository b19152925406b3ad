"""Request/response schemas for auth endpoints and session claims."""

from typing import Literal

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError

# Access level of a user; anything else is rejected at the validation boundary.
Role = Literal["user", "admin"]

ROLE_VALUES: frozenset[str] = frozenset({"user", "admin"})

NAME_MIN_LEN = 2
NAME_MAX_LEN = 255
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128


def check_name(value: str) -> str:
    """Trim, then enforce the 2-255 character range."""
    name = value.strip()
    if len(name) < NAME_MIN_LEN:
        raise PydanticCustomError(
            "name_too_short", f"Name must be at least {NAME_MIN_LEN} characters long"
        )
    if len(name) > NAME_MAX_LEN:
        raise PydanticCustomError(
            "name_too_long", f"Name must be at most {NAME_MAX_LEN} characters long"
        )
    return name


def check_email(value: str) -> str:
    """Trim, then check syntax (no deliverability lookup) and length."""
    email = value.strip()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("invalid_email", "Invalid email address") from None
    if len(email) > EMAIL_MAX_LEN:
        raise PydanticCustomError(
            "email_too_long", f"Email must be at most {EMAIL_MAX_LEN} characters long"
        )
    return email


def check_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LEN:
        raise PydanticCustomError(
            "password_too_short",
            f"Password must be at least {PASSWORD_MIN_LEN} characters long",
        )
    if len(value) > PASSWORD_MAX_LEN:
        raise PydanticCustomError(
            "password_too_long",
            f"Password must be at most {PASSWORD_MAX_LEN} characters long",
        )
    return value


def check_role(value: object) -> object:
    """Runs before the Literal check so unknown roles get a readable message."""
    if value not in ROLE_VALUES:
        raise PydanticCustomError(
            "invalid_role", "Role must be one of: {roles}", {"roles": "admin, user"}
        )
    return value


class SignUpRequest(BaseModel):
    """Registration payload."""

    name: str = Field(..., description="Display name (2-255 chars after trimming)")
    email: str = Field(..., description="Unique email address")
    password: str = Field(..., description="Password (6-128 chars)")
    role: Role = Field(default="user", description="Access level; defaults to user")

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return check_name(v)

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str) -> str:
        return check_email(v)

    @field_validator("password")
    @classmethod
    def clean_password(cls, v: str) -> str:
        return check_password(v)

    @field_validator("role", mode="before")
    @classmethod
    def clean_role(cls, v: object) -> object:
        return check_role(v)


class SignInRequest(BaseModel):
    """Credentials for sign-in. Email is trimmed and case-folded."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return check_email(v.lower())

    @field_validator("password")
    @classmethod
    def require_password(cls, v: str) -> str:
        if not v:
            raise PydanticCustomError("password_required", "Password is required")
        return v


class SessionClaims(BaseModel):
    """Identity facts carried in a session token."""

    id: int
    email: str
    role: Role


class MessageResponse(BaseModel):
    message: str
