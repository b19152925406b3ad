"""HTTP tests for /api/users: authentication, role gates and ownership rules."""

import unittest
from unittest.mock import patch

from userhub.models import User

from support import ApiTestCase


class UsersApiTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin, self.admin_id = self.signed_in_client("root@example.com", role="admin", name="Root Admin")
        self.user, self.user_id = self.signed_in_client("ann@example.com", name="Ann Lee")
        self.other, self.other_id = self.signed_in_client("bob@example.com", name="Bob Ray")

    def stored(self, user_id: int) -> User | None:
        with self.SessionLocal() as db:
            return db.query(User).filter(User.id == user_id).first()


class TestAuthentication(UsersApiTestCase):
    def test_missing_cookie(self) -> None:
        resp = self.new_client().get(f"/api/users/{self.user_id}")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(
            resp.json(),
            {"error": "Unauthorized", "message": "Authentication token is required"},
        )

    def test_invalid_token(self) -> None:
        client = self.new_client(cookies={"token": "garbage"})
        resp = client.get(f"/api/users/{self.user_id}")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["message"], "Invalid or expired token")


class TestListUsers(UsersApiTestCase):
    def test_admin_lists_all_without_passwords(self) -> None:
        resp = self.admin.get("/api/users")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["message"], "Users retrieved successfully")
        self.assertEqual([u["id"] for u in body["users"]], [self.admin_id, self.user_id, self.other_id])
        for u in body["users"]:
            self.assertNotIn("password", u)

    def test_non_admin_forbidden(self) -> None:
        resp = self.user.get("/api/users")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(
            resp.json(),
            {"error": "Forbidden", "message": "You do not have permission to access this resource"},
        )

    def test_anonymous_unauthorized(self) -> None:
        self.assertEqual(self.new_client().get("/api/users").status_code, 401)


class TestGetUser(UsersApiTestCase):
    def test_any_authenticated_user_can_read_any_user(self) -> None:
        resp = self.user.get(f"/api/users/{self.other_id}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["email"], "bob@example.com")
        self.assertNotIn("password", resp.json()["user"])

    def test_missing_user(self) -> None:
        resp = self.admin.get("/api/users/999")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Not Found", "message": "User not found"})

    def test_invalid_id(self) -> None:
        for raw in ("abc", "0", "-1"):
            with self.subTest(raw=raw):
                resp = self.admin.get(f"/api/users/{raw}")
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(
                    resp.json(),
                    {"error": "Validation Failed", "details": "User ID must be a positive integer"},
                )


class TestUpdateUser(UsersApiTestCase):
    def test_self_update_name(self) -> None:
        resp = self.user.put(f"/api/users/{self.user_id}", json={"name": "X Y"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "User updated successfully")
        self.assertEqual(resp.json()["user"]["name"], "X Y")
        row = self.stored(self.user_id)
        self.assertEqual(row.name, "X Y")
        self.assertEqual(row.role, "user")

    def test_self_promotion_forbidden(self) -> None:
        resp = self.user.put(f"/api/users/{self.user_id}", json={"role": "admin"})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["message"], "Only administrators can change user roles")
        self.assertEqual(self.stored(self.user_id).role, "user")

    def test_updating_someone_else_forbidden(self) -> None:
        resp = self.user.put(f"/api/users/{self.other_id}", json={"name": "Hacked"})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["message"], "You can only update your own information")
        self.assertEqual(self.stored(self.other_id).name, "Bob Ray")

    def test_admin_changes_role(self) -> None:
        resp = self.admin.put(f"/api/users/{self.user_id}", json={"role": "admin"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.stored(self.user_id).role, "admin")

    def test_password_change_allows_new_sign_in(self) -> None:
        resp = self.user.put(f"/api/users/{self.user_id}", json={"password": "brand-new-pass"})
        self.assertEqual(resp.status_code, 200)
        sign_in = self.new_client().post(
            "/api/auth/sign-in",
            json={"email": "ann@example.com", "password": "brand-new-pass"},
        )
        self.assertEqual(sign_in.status_code, 200)

    def test_email_taken(self) -> None:
        resp = self.user.put(f"/api/users/{self.user_id}", json={"email": "bob@example.com"})
        self.assertEqual(resp.status_code, 409)

    def test_invalid_body(self) -> None:
        resp = self.user.put(f"/api/users/{self.user_id}", json={"password": "123"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["details"], "Password must be at least 6 characters long")

    def test_admin_updates_missing_user(self) -> None:
        resp = self.admin.put("/api/users/999", json={"name": "Nobody"})
        self.assertEqual(resp.status_code, 404)


class TestDeleteUser(UsersApiTestCase):
    def test_non_admin_forbidden_and_row_remains(self) -> None:
        for target in (self.other_id, self.user_id):
            with self.subTest(target=target):
                resp = self.user.delete(f"/api/users/{target}")
                self.assertEqual(resp.status_code, 403)
                self.assertIsNotNone(self.stored(target))

    def test_admin_deletes(self) -> None:
        resp = self.admin.delete(f"/api/users/{self.other_id}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"message": "User deleted successfully"})
        self.assertIsNone(self.stored(self.other_id))
        self.assertEqual(self.admin.delete(f"/api/users/{self.other_id}").status_code, 404)


class TestUnexpectedErrors(UsersApiTestCase):
    def test_internal_error_is_generic(self) -> None:
        client = self.new_client(
            raise_server_exceptions=False,
            cookies={"token": self.admin.cookies["token"]},
        )
        with patch(
            "userhub.services.users.list_users", side_effect=RuntimeError("db exploded")
        ), self.assertLogs("userhub.core.errors", level="ERROR"):
            resp = client.get("/api/users")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(
            resp.json(),
            {"error": "Internal Server Error", "message": "Something went wrong"},
        )


if __name__ == "__main__":
    unittest.main()
