"""Structured validation results and human-readable error formatting."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

_LOCATION_PREFIXES = frozenset({"body", "path", "query", "header", "cookie"})

# Error types raised by our own validators; their messages are already user-facing.
CUSTOM_ERROR_TYPES = frozenset(
    {
        "name_too_short",
        "name_too_long",
        "invalid_email",
        "email_too_long",
        "password_too_short",
        "password_too_long",
        "password_required",
        "invalid_role",
        "invalid_user_id",
    }
)


@dataclass
class ValidationResult(Generic[ModelT]):
    """Outcome of validating a payload: the parsed value or the ordered errors."""

    value: ModelT | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.errors

    @property
    def messages(self) -> list[str]:
        return [error_message(e) for e in self.errors]


def _field_name(loc: Sequence[Any]) -> str:
    parts = [str(p) for p in loc if not (isinstance(p, str) and p in _LOCATION_PREFIXES)]
    return ".".join(parts)


def error_message(error: Mapping[str, Any]) -> str:
    """One readable message per pydantic/FastAPI error dict."""
    name = _field_name(error.get("loc", ()))
    msg = str(error.get("msg", "Invalid value"))
    error_type = error.get("type", "")
    if error_type == "missing":
        label = name.replace("_", " ").capitalize() if name else "Request body"
        return f"{label} is required"
    if error_type in CUSTOM_ERROR_TYPES:
        return msg
    return f"{name}: {msg}" if name else msg


def format_validation_errors(errors: Sequence[Mapping[str, Any]]) -> str:
    """Join error messages in order, e.g. 'Invalid email address, Password is required'."""
    if not errors:
        return "Validation Failed"
    return ", ".join(error_message(e) for e in errors)


def validate_payload(model: type[ModelT], data: Any) -> ValidationResult[ModelT]:
    """
    Validate raw input against a schema without raising.

    Malformed-but-parseable input produces a failed result with ordered errors;
    nothing is mutated.
    """
    try:
        return ValidationResult(value=model.model_validate(data))
    except ValidationError as e:
        return ValidationResult(errors=e.errors(include_url=False))
