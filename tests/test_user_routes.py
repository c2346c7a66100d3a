"""
tests/test_user_routes.py -- Integration tests for /api/users.

Coverage:
  - /users/me with and without a token
  - Admin-only listing; reading a user (self or admin)
  - Profile updates: self, admin on others, 403 for others with state unchanged,
    role changes admin-only, email uniqueness, new password works for login
  - Deletion: admin only, not their own account, deleted user's token stops working
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def regular(register) -> tuple[str, dict]:
    return register(name="John Doe")


@pytest.fixture
def admin(register) -> tuple[str, dict]:
    return register(name="Admin User", role="admin", age=30)


class TestMe:
    def test_get_current_profile(self, api_client: TestClient, regular) -> None:
        token, user = regular
        resp = api_client.get("/api/users/me", headers=_auth(token))
        assert resp.status_code == 200
        payload = resp.json()
        assert payload["success"] is True
        assert payload["data"]["email"] == user["email"]
        assert "password" not in payload["data"]
        assert "hashed_password" not in payload["data"]

    def test_me_without_token(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/users/me")
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_me_with_malformed_header(self, api_client: TestClient, regular) -> None:
        token, _ = regular
        resp = api_client.get("/api/users/me", headers={"Authorization": f"Token {token}"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authorized, no token provided"


class TestReadUsers:
    def test_list_users_as_admin(self, api_client: TestClient, admin, regular) -> None:
        admin_token, _ = admin
        resp = api_client.get("/api/users", headers=_auth(admin_token))
        assert resp.status_code == 200
        payload = resp.json()
        assert payload["success"] is True
        assert payload["count"] > 0
        assert isinstance(payload["data"], list)
        assert all("hashed_password" not in u for u in payload["data"])

    def test_list_users_as_regular_user(self, api_client: TestClient, regular) -> None:
        token, _ = regular
        resp = api_client.get("/api/users", headers=_auth(token))
        assert resp.status_code == 403
        assert resp.json()["success"] is False

    def test_get_user_as_admin(self, api_client: TestClient, admin, regular) -> None:
        admin_token, _ = admin
        _, user = regular
        resp = api_client.get(f"/api/users/{user['id']}", headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == user["id"]

    def test_get_other_user_as_regular_user(self, api_client: TestClient, admin, regular) -> None:
        token, _ = regular
        _, admin_user = admin
        resp = api_client.get(f"/api/users/{admin_user['id']}", headers=_auth(token))
        assert resp.status_code == 403

    def test_get_self_as_regular_user(self, api_client: TestClient, regular) -> None:
        token, user = regular
        resp = api_client.get(f"/api/users/{user['id']}", headers=_auth(token))
        assert resp.status_code == 200

    def test_get_missing_user_as_admin(self, api_client: TestClient, admin) -> None:
        admin_token, _ = admin
        resp = api_client.get("/api/users/doesnotexist", headers=_auth(admin_token))
        assert resp.status_code == 404


class TestUpdateUser:
    def test_update_own_profile(self, api_client: TestClient, regular) -> None:
        token, user = regular
        resp = api_client.put(f"/api/users/{user['id']}", json={"name": "John Updated", "age": 26}, headers=_auth(token))
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["name"] == "John Updated"
        assert data["age"] == 26
        assert data["email"] == user["email"]

    def test_boolean_age_rejected(self, api_client: TestClient, regular) -> None:
        token, user = regular
        resp = api_client.put(f"/api/users/{user['id']}", json={"age": True}, headers=_auth(token))
        assert resp.status_code == 400
        assert api_client.get("/api/users/me", headers=_auth(token)).json()["data"]["age"] == 25

    def test_admin_updates_any_user(self, api_client: TestClient, admin, regular) -> None:
        admin_token, _ = admin
        _, user = regular
        resp = api_client.put(
            f"/api/users/{user['id']}", json={"name": "Admin Updated Name"}, headers=_auth(admin_token)
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Admin Updated Name"

    def test_regular_user_cannot_update_other(self, api_client: TestClient, admin, regular) -> None:
        token, _ = regular
        admin_token, admin_user = admin
        resp = api_client.put(
            f"/api/users/{admin_user['id']}", json={"name": "Unauthorized Update"}, headers=_auth(token)
        )
        assert resp.status_code == 403
        unchanged = api_client.get("/api/users/me", headers=_auth(admin_token)).json()["data"]
        assert unchanged["name"] == "Admin User"

    def test_regular_user_cannot_promote_self(self, api_client: TestClient, regular) -> None:
        token, user = regular
        resp = api_client.put(f"/api/users/{user['id']}", json={"role": "admin"}, headers=_auth(token))
        assert resp.status_code == 403
        assert api_client.get("/api/users/me", headers=_auth(token)).json()["data"]["role"] == "user"

    def test_admin_can_change_role(self, api_client: TestClient, admin, regular) -> None:
        admin_token, _ = admin
        _, user = regular
        resp = api_client.put(f"/api/users/{user['id']}", json={"role": "admin"}, headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json()["data"]["role"] == "admin"

    def test_email_must_stay_unique(self, api_client: TestClient, admin, regular) -> None:
        token, user = regular
        _, admin_user = admin
        resp = api_client.put(f"/api/users/{user['id']}", json={"email": admin_user["email"]}, headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["code"] == "conflict"

    def test_password_change_applies_to_login(self, api_client: TestClient, regular) -> None:
        token, user = regular
        resp = api_client.put(f"/api/users/{user['id']}", json={"password": "n3w-secret"}, headers=_auth(token))
        assert resp.status_code == 200
        old = api_client.post("/api/auth/login", json={"email": user["email"], "password": "password123"})
        new = api_client.post("/api/auth/login", json={"email": user["email"], "password": "n3w-secret"})
        assert old.status_code == 401
        assert new.status_code == 200


class TestDeleteUser:
    def test_delete_user_as_admin(self, api_client: TestClient, admin, regular) -> None:
        admin_token, _ = admin
        token, user = regular
        resp = api_client.delete(f"/api/users/{user['id']}", headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "User deleted successfully"}

        # The deleted user's token no longer authenticates.
        me = api_client.get("/api/users/me", headers=_auth(token))
        assert me.status_code == 401
        assert me.json()["message"] == "User no longer exists"

    def test_delete_user_as_regular_user(self, api_client: TestClient, admin, regular) -> None:
        token, _ = regular
        admin_token, admin_user = admin
        resp = api_client.delete(f"/api/users/{admin_user['id']}", headers=_auth(token))
        assert resp.status_code == 403
        assert api_client.get("/api/users/me", headers=_auth(admin_token)).status_code == 200

    def test_admin_cannot_delete_self(self, api_client: TestClient, admin) -> None:
        admin_token, admin_user = admin
        resp = api_client.delete(f"/api/users/{admin_user['id']}", headers=_auth(admin_token))
        assert resp.status_code == 400
        assert api_client.get("/api/users/me", headers=_auth(admin_token)).status_code == 200

    def test_delete_missing_user(self, api_client: TestClient, admin) -> None:
        admin_token, _ = admin
        resp = api_client.delete("/api/users/doesnotexist", headers=_auth(admin_token))
        assert resp.status_code == 404

    def test_books_survive_owner_deletion(self, api_client: TestClient, admin, regular) -> None:
        admin_token, _ = admin
        token, user = regular
        created = api_client.post(
            "/api/books", json={"title": "Orphan", "description": "D", "amount": 2}, headers=_auth(token)
        ).json()["data"]
        assert api_client.delete(f"/api/users/{user['id']}", headers=_auth(admin_token)).status_code == 200

        book = api_client.get(f"/api/books/{created['id']}").json()["data"]
        assert book["owner_id"] == user["id"]
        assert "owner" not in book
