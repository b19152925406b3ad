"""Unit tests for userhub.services.users: update policy and user management."""

import unittest

from userhub.core.security import verify_password
from userhub.schemas.auth import SessionClaims
from userhub.services.user_store import UserNotFoundError, UserStore
from userhub.services.users import (
    PermissionDeniedError,
    authorize_update,
    delete_user,
    get_user,
    list_users,
    update_user,
)

from support import DatabaseTestCase


def _claims(id: int = 1, role: str = "user") -> SessionClaims:
    return SessionClaims(id=id, email=f"user{id}@example.com", role=role)


class TestAuthorizeUpdate(unittest.TestCase):
    """Self-or-admin rule; only admins change roles; role silently dropped on plain self-updates."""

    def test_self_update_allowed(self) -> None:
        self.assertEqual(authorize_update(_claims(1), 1, {"name": "X"}), {"name": "X"})

    def test_other_user_denied_for_non_admin(self) -> None:
        with self.assertRaises(PermissionDeniedError) as ctx:
            authorize_update(_claims(1), 2, {"name": "X"})
        self.assertEqual(ctx.exception.message, "You can only update your own information")

    def test_non_admin_cannot_set_role(self) -> None:
        with self.assertRaises(PermissionDeniedError) as ctx:
            authorize_update(_claims(1), 1, {"role": "admin"})
        self.assertEqual(ctx.exception.message, "Only administrators can change user roles")

    def test_non_admin_setting_own_role_to_user_is_still_denied(self) -> None:
        with self.assertRaises(PermissionDeniedError):
            authorize_update(_claims(1), 1, {"name": "X", "role": "user"})

    def test_role_key_without_value_is_dropped_for_non_admin(self) -> None:
        self.assertEqual(authorize_update(_claims(1), 1, {"name": "X", "role": None}), {"name": "X"})

    def test_admin_may_update_anyone_including_role(self) -> None:
        changes = {"name": "X", "role": "admin"}
        self.assertEqual(authorize_update(_claims(9, "admin"), 2, changes), changes)


class TestUserManagement(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store = UserStore(self.session)
        self.user = self.store.insert("Ann Lee", "ann@example.com", "digest")

    def test_get_and_list(self) -> None:
        self.assertEqual(get_user(self.store, self.user.id).email, "ann@example.com")
        self.assertEqual(len(list_users(self.store)), 1)

    def test_get_missing(self) -> None:
        with self.assertRaises(UserNotFoundError):
            get_user(self.store, 999)

    def test_update_hashes_new_password(self) -> None:
        updated = update_user(self.store, self.user.id, {"password": "newpass1"}, rounds=4)
        self.assertNotEqual(updated.password, "newpass1")
        self.assertTrue(verify_password("newpass1", updated.password))

    def test_update_missing(self) -> None:
        with self.assertRaises(UserNotFoundError):
            update_user(self.store, 999, {"name": "X"})

    def test_delete(self) -> None:
        delete_user(self.store, self.user.id)
        self.assertEqual(list_users(self.store), [])
        with self.assertRaises(UserNotFoundError):
            delete_user(self.store, self.user.id)


if __name__ == "__main__":
    unittest.main()
