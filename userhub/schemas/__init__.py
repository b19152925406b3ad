"""Pydantic request/response schemas."""

from userhub.schemas.auth import (
    ROLE_VALUES,
    MessageResponse,
    Role,
    SessionClaims,
    SignInRequest,
    SignUpRequest,
)
from userhub.schemas.health import HealthResponse
from userhub.schemas.user import (
    UserIdPath,
    UserPublic,
    UserResponse,
    UsersListResponse,
    UserUpdateRequest,
)
from userhub.schemas.validation import (
    ValidationResult,
    format_validation_errors,
    validate_payload,
)

__all__ = [
    "HealthResponse",
    "MessageResponse",
    "ROLE_VALUES",
    "Role",
    "SessionClaims",
    "SignInRequest",
    "SignUpRequest",
    "UserIdPath",
    "UserPublic",
    "UserResponse",
    "UserUpdateRequest",
    "UsersListResponse",
    "ValidationResult",
    "format_validation_errors",
    "validate_payload",
]
