"""User management endpoints with role and ownership checks."""

import logging

from fastapi import APIRouter, HTTPException, status

from userhub.api.deps import AdminClaims, AppSettings, CurrentClaims, Store, UserId
from userhub.schemas.auth import MessageResponse
from userhub.schemas.user import (
    UserPublic,
    UserResponse,
    UsersListResponse,
    UserUpdateRequest,
)
from userhub.services import users as users_service
from userhub.services.user_store import DuplicateEmailError, UserNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()


def _not_found(e: UserNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.get("", response_model=UsersListResponse)
def list_users(_admin: AdminClaims, store: Store) -> UsersListResponse:
    """List all users (admin only)."""
    users = users_service.list_users(store)
    return UsersListResponse(
        message="Users retrieved successfully",
        users=[UserPublic.model_validate(u) for u in users],
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(_claims: CurrentClaims, user_id: UserId, store: Store) -> UserResponse:
    """Any authenticated user may read any user record."""
    try:
        user = users_service.get_user(store, user_id)
    except UserNotFoundError as e:
        raise _not_found(e) from e
    return UserResponse(
        message="User retrieved successfully",
        user=UserPublic.model_validate(user),
    )


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    claims: CurrentClaims,
    user_id: UserId,
    body: UserUpdateRequest,
    store: Store,
    settings: AppSettings,
) -> UserResponse:
    """
    Update a user. Users may update themselves; admins may update anyone.
    Only admins may change roles.
    """
    try:
        changes = users_service.authorize_update(claims, user_id, body.changes())
    except users_service.PermissionDeniedError as e:
        logger.info("Update of user %s denied for user %s: %s", user_id, claims.id, e.message)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message) from e

    try:
        user = users_service.update_user(
            store, user_id, changes, rounds=settings.BCRYPT_ROUNDS
        )
    except UserNotFoundError as e:
        raise _not_found(e) from e
    except DuplicateEmailError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e

    return UserResponse(
        message="User updated successfully",
        user=UserPublic.model_validate(user),
    )


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(_admin: AdminClaims, user_id: UserId, store: Store) -> MessageResponse:
    """Delete a user (admin only)."""
    try:
        users_service.delete_user(store, user_id)
    except UserNotFoundError as e:
        raise _not_found(e) from e
    return MessageResponse(message="User deleted successfully")
