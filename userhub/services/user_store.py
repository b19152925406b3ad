"""Single-row reads and writes of the users table; database failures become StorageError."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from userhub.models import User

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Columns a caller may change through update(); id and timestamps are managed here.
UPDATABLE_FIELDS = frozenset({"name", "email", "password", "role"})


class StorageError(Exception):
    """Raised when the database rejects or fails an operation."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DuplicateEmailError(Exception):
    """Raised when an email is already registered to another user."""

    def __init__(self, email: str) -> None:
        self.email = email
        self.message = "User with this email already exists"
        super().__init__(self.message)


class UserNotFoundError(Exception):
    """Raised when no user matches the requested id or email."""

    def __init__(self, message: str = "User not found") -> None:
        self.message = message
        super().__init__(message)


def _is_email_conflict(error: IntegrityError) -> bool:
    text = str(error.orig).lower()
    return "email" in text or "unique" in text


class UserStore:
    """
    Access to User rows through one SQLAlchemy session.

    Each write commits on its own; nothing spans more than one row. The unique
    index on email is the authoritative duplicate guard, so an IntegrityError on
    insert/update surfaces as DuplicateEmailError.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _run(self, action: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Error %s: %s", action, e)
            raise StorageError(f"Error {action}") from e

    def find_by_email(self, email: str) -> User | None:
        return self._run(
            "retrieving user by email",
            lambda: self.session.query(User).filter(User.email == email).first(),
        )

    def find_by_id(self, user_id: int) -> User | None:
        return self._run(
            "retrieving user by id",
            lambda: self.session.query(User).filter(User.id == user_id).first(),
        )

    def list_all(self) -> list[User]:
        return self._run(
            "retrieving users",
            lambda: self.session.query(User).order_by(User.id).all(),
        )

    def insert(self, name: str, email: str, password_digest: str, role: str = "user") -> User:
        """Persist a new user; id and timestamps are assigned by the database."""
        user = User(name=name, email=email, password=password_digest, role=role)
        self._commit("creating user", email, lambda: self.session.add(user))
        self._run("reloading user", lambda: self.session.refresh(user))
        return user

    def update(self, user: User, changes: dict[str, Any]) -> User:
        """Apply changes to an existing row and refresh updated_at."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        def apply() -> None:
            for key, value in changes.items():
                setattr(user, key, value)
            user.updated_at = datetime.now(UTC)

        self._commit("updating user", changes.get("email", user.email), apply)
        self._run("reloading user", lambda: self.session.refresh(user))
        return user

    def delete(self, user: User) -> None:
        self._commit("deleting user", None, lambda: self.session.delete(user))

    def _commit(self, action: str, email: str | None, mutate: Callable[[], None]) -> None:
        try:
            mutate()
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if email is not None and _is_email_conflict(e):
                raise DuplicateEmailError(email) from e
            logger.error("Error %s: %s", action, e)
            raise StorageError(f"Error {action}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Error %s: %s", action, e)
            raise StorageError(f"Error {action}") from e
