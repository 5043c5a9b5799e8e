"""
tests/test_api_users.py -- Integration tests for /api/v1/users.

Covers:
  - Admin sees every user; a Manager sees only users of its enterprise
  - cross-tenant detail is 404
  - create: 201 without password echo, 409 on duplicate username/email,
    422 on malformed email, only Admin may hand out the Admin role
  - PATCH status locks an account and its next request is refused
  - self-lock and self-delete are refused
  - a password over 72 UTF-8 bytes is a 422, one at exactly 72 bytes works
"""

from __future__ import annotations

from auth.models import PermissionGrant, Role, User


class TestList:
    def test_admin_sees_all(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/users", headers=api_client.headers("admin"))
        assert resp.status_code == 200
        assert {"admin", "acme_manager", "globex_manager"} <= {u["username"] for u in resp.json()}

    def test_manager_sees_own_enterprise_only(self, api_client) -> None:
        resp = api_client.client.get("/api/v1/users", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 200
        acme = api_client.world.enterprises["acme"]
        assert resp.json()
        assert all(u["enterprise_id"] == acme for u in resp.json())

    def test_by_enterprise_other_tenant_is_404(self, api_client) -> None:
        globex = api_client.world.enterprises["globex"]
        resp = api_client.client.get(f"/api/v1/users/enterprise/{globex}", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 404

    def test_detail_other_tenant_is_404(self, api_client) -> None:
        uid = api_client.world.users["globex_manager"]
        resp = api_client.client.get(f"/api/v1/users/{uid}", headers=api_client.headers("acme_manager"))
        assert resp.status_code == 404

    def test_manager_cannot_create(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"username": "sneaky", "email": "sneaky@example.com", "password": "longenough"},
            headers=api_client.headers("acme_manager"),
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "No create permission for users"


class TestCreate:
    def test_create(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={
                "username": "newbie",
                "email": "newbie@example.com",
                "password": "longenough",
                "roleId": api_client.world.roles["manager"],
                "enterpriseId": api_client.world.enterprises["globex"],
            },
            headers=api_client.headers("admin"),
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["role_name"] == "Manager"
        assert data["enterprise_name"] == "Globex"
        assert "password" not in data and "hashed_password" not in data

        login = api_client.client.post("/api/v1/auth/login", json={"username": "newbie", "password": "longenough"})
        assert login.status_code == 200

    def test_duplicate_username(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"username": "admin", "email": "fresh@example.com", "password": "longenough"},
            headers=api_client.headers("admin"),
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["message"] == "Username already exists"

    def test_duplicate_email(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"username": "fresh", "email": "admin@example.com", "password": "longenough"},
            headers=api_client.headers("admin"),
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["message"] == "Email already exists"

    def test_malformed_email(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"username": "fresh2", "email": "not-an-email", "password": "longenough"},
            headers=api_client.headers("admin"),
        )
        assert resp.status_code == 422

    def test_unknown_role(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={"username": "fresh3", "email": "fresh3@example.com", "password": "longenough", "roleId": 9999},
            headers=api_client.headers("admin"),
        )
        assert resp.status_code == 400


class TestStatus:
    def test_lock_takes_effect_on_next_request(self, api_client) -> None:
        uid = api_client.user_store.create_user(
            _user("to_lock", api_client.world.roles["manager"], api_client.world.enterprises["acme"])
        )
        victim_headers = api_client.headers("to_lock")
        assert api_client.client.get("/api/v1/auth/profile", headers=victim_headers).status_code == 200

        resp = api_client.client.patch(
            f"/api/v1/users/{uid}/status", json={"status": "locked"}, headers=api_client.headers("admin")
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "User locked successfully"

        denied = api_client.client.get("/api/v1/auth/profile", headers=victim_headers)
        assert denied.status_code == 401
        assert denied.json()["error"]["message"] == "User not found or inactive"

    def test_invalid_status(self, api_client) -> None:
        uid = api_client.world.users["acme_empty"]
        resp = api_client.client.patch(
            f"/api/v1/users/{uid}/status", json={"status": "banned"}, headers=api_client.headers("admin")
        )
        assert resp.status_code == 422

    def test_self_lock_refused(self, api_client) -> None:
        uid = api_client.world.users["admin"]
        resp = api_client.client.patch(
            f"/api/v1/users/{uid}/status", json={"status": "locked"}, headers=api_client.headers("admin")
        )
        assert resp.status_code == 400

    def test_self_delete_refused(self, api_client) -> None:
        uid = api_client.world.users["admin"]
        resp = api_client.client.delete(f"/api/v1/users/{uid}", headers=api_client.headers("admin"))
        assert resp.status_code == 400
        assert api_client.user_store.get_by_id(uid) is not None


class TestUpdateDelete:
    def test_update_email_conflict(self, api_client) -> None:
        uid = api_client.world.users["acme_empty"]
        resp = api_client.client.put(
            f"/api/v1/users/{uid}", json={"email": "admin@example.com"}, headers=api_client.headers("admin")
        )
        assert resp.status_code == 409

    def test_update_username(self, api_client) -> None:
        uid = api_client.user_store.create_user(_user("rename_me", None, None))
        resp = api_client.client.put(
            f"/api/v1/users/{uid}", json={"username": "renamed"}, headers=api_client.headers("admin")
        )
        assert resp.status_code == 200
        assert resp.json()["username"] == "renamed"

    def test_delete(self, api_client) -> None:
        uid = api_client.user_store.create_user(_user("doomed", None, None))
        resp = api_client.client.delete(f"/api/v1/users/{uid}", headers=api_client.headers("admin"))
        assert resp.status_code == 200
        assert api_client.user_store.get_by_id(uid) is None

    def test_delete_unknown(self, api_client) -> None:
        assert api_client.client.delete("/api/v1/users/9999", headers=api_client.headers("admin")).status_code == 404


def _user(username: str, role_id, enterprise_id):
    return User(
        username=username,
        email=f"{username}@example.com",
        hashed_password="$2b$04$invalidinvalidinvalidinvalidinvalidinvalidinvalidinval",
        role_id=role_id,
        enterprise_id=enterprise_id,
    )


class TestScopedCreate:
    def _recruiter_headers(self, api_client) -> dict[str, str]:
        if api_client.user_store.get_by_username("acme_recruiter") is None:
            role_id = api_client.user_store.create_role(
                Role(name="Recruiter", permissions=[PermissionGrant("users", can_read=True, can_create=True)])
            )
            api_client.user_store.create_user(_user("acme_recruiter", role_id, api_client.world.enterprises["acme"]))
        return api_client.headers("acme_recruiter")

    def test_enterprise_forced_to_callers_own(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={
                "username": "acme_hire",
                "email": "acme_hire@example.com",
                "password": "longenough",
                "enterpriseId": api_client.world.enterprises["globex"],
            },
            headers=self._recruiter_headers(api_client),
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["enterprise_id"] == api_client.world.enterprises["acme"]

    def test_cannot_grant_admin_role(self, api_client) -> None:
        resp = api_client.client.post(
            "/api/v1/users",
            json={
                "username": "wannabe",
                "email": "wannabe@example.com",
                "password": "longenough",
                "roleId": api_client.world.roles["admin"],
            },
            headers=self._recruiter_headers(api_client),
        )
        assert resp.status_code == 403
        assert api_client.user_store.get_by_username("wannabe") is None


class TestPasswordBytes:
    def _create(self, api_client, username: str, password: str):
        return api_client.client.post(
            "/api/v1/users",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": password,
                "roleId": api_client.world.roles["manager"],
                "enterpriseId": api_client.world.enterprises["acme"],
            },
            headers=api_client.headers("admin"),
        )

    def test_over_limit_is_422(self, api_client) -> None:
        resp = self._create(api_client, "accent_long", "é" * 40)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        assert api_client.user_store.get_by_username("accent_long") is None

    def test_exactly_72_bytes_logs_in(self, api_client) -> None:
        resp = self._create(api_client, "accent_max", "é" * 36)
        assert resp.status_code == 201, resp.text
        login = api_client.client.post("/api/v1/auth/login", json={"username": "accent_max", "password": "é" * 36})
        assert login.status_code == 200
