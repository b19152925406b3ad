"""User management (list/get/update/delete) and the ownership/role policy for mutations."""

import logging
from typing import Any

from userhub.core.security import BCRYPT_ROUNDS, hash_password
from userhub.models import User
from userhub.schemas.auth import SessionClaims
from userhub.services.user_store import UserNotFoundError, UserStore

logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when the requester's role or identity does not allow the operation."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def authorize_update(
    requester: SessionClaims, target_id: int, changes: dict[str, Any]
) -> dict[str, Any]:
    """
    Check that requester may apply changes to target_id; return the changes to apply.

    Admins may update anyone, including role. Other users may only update
    themselves, may not set role, and have role dropped from their changes.
    """
    is_admin = requester.role == "admin"
    if requester.id != target_id and not is_admin:
        raise PermissionDeniedError("You can only update your own information")
    if changes.get("role") is not None and not is_admin:
        raise PermissionDeniedError("Only administrators can change user roles")
    if not is_admin:
        return {k: v for k, v in changes.items() if k != "role"}
    return dict(changes)


def list_users(store: UserStore) -> list[User]:
    users = store.list_all()
    logger.info("Retrieved all users")
    return users


def get_user(store: UserStore, user_id: int) -> User:
    user = store.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    logger.info("Retrieved user by ID: %s", user_id)
    return user


def update_user(
    store: UserStore,
    user_id: int,
    changes: dict[str, Any],
    rounds: int = BCRYPT_ROUNDS,
) -> User:
    """Apply already-authorized changes; a new password is hashed before storing."""
    user = store.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    data = dict(changes)
    if data.get("password"):
        data["password"] = hash_password(data["password"], rounds=rounds)
    updated = store.update(user, data)
    logger.info("User updated successfully: %s", user_id)
    return updated


def delete_user(store: UserStore, user_id: int) -> None:
    user = store.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    store.delete(user)
    logger.info("User deleted successfully: %s", user_id)
