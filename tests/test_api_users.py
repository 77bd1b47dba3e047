"""
tests/test_api_users.py -- Integration tests for user management routes.

Coverage:
  - capability gating: view_users / add_users / edit_users / remove_users
  - create, duplicate email (400 validation_error), second admin (400 conflict)
  - self-demotion and self-deactivation (403)
  - non-admins cannot manage the admin account or hand out the admin role
  - soft delete, password reset, self-service profile and avatar
"""

from __future__ import annotations

from auth.models import Capability, PermissionSet, Role

USERS = "/api/v1/users"

NEW_USER = {
    "email": "bob@x.com",
    "password": "bob-password-1",
    "name": "Bob",
    "role": "employee",
    "department": "Ops",
}


def _update_body(name: str, role: str, **extra) -> dict:
    return {"name": name, "role": role, **extra}


class TestUserGating:
    def test_employee_cannot_list_users(self, api) -> None:
        resp = api.client.get(USERS, headers=api.headers(Role.employee))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_manager_can_list_users(self, api) -> None:
        resp = api.client.get(USERS, headers=api.headers(Role.manager))
        assert resp.status_code == 200
        emails = {u["email"] for u in resp.json()["data"]}
        assert emails == {"admin@taskflow.com", "manager@taskflow.com", "employee@taskflow.com"}

    def test_manager_cannot_add_users_by_default(self, api) -> None:
        resp = api.client.post(USERS, json=NEW_USER, headers=api.headers(Role.manager))
        assert resp.status_code == 403

    def test_unauthenticated(self, api) -> None:
        assert api.client.get(USERS).status_code == 401


class TestCreateUser:
    def test_admin_creates_user(self, api) -> None:
        resp = api.client.post(USERS, json=NEW_USER, headers=api.headers(Role.admin))
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        assert data["email"] == "bob@x.com"
        assert data["role"] == "employee"
        assert data["is_active"] is True
        assert api.user_store.get_by_email("bob@x.com").created_by == api.ids[Role.admin]

    def test_new_user_can_log_in(self, api) -> None:
        api.client.post(USERS, json=NEW_USER, headers=api.headers(Role.admin))
        resp = api.client.post("/api/v1/auth/login", json={"email": "bob@x.com", "password": "bob-password-1"})
        assert resp.status_code == 200

    def test_duplicate_email(self, api) -> None:
        api.client.post(USERS, json=NEW_USER, headers=api.headers(Role.admin))
        resp = api.client.post(USERS, json={**NEW_USER, "email": "BOB@x.com"}, headers=api.headers(Role.admin))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_second_admin_conflict(self, api) -> None:
        resp = api.client.post(USERS, json={**NEW_USER, "role": "admin"}, headers=api.headers(Role.admin))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "conflict"

    def test_invalid_role(self, api) -> None:
        resp = api.client.post(USERS, json={**NEW_USER, "role": "superuser"}, headers=api.headers(Role.admin))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_short_password(self, api) -> None:
        resp = api.client.post(USERS, json={**NEW_USER, "password": "short"}, headers=api.headers(Role.admin))
        assert resp.status_code == 400

    def test_multibyte_password_over_72_bytes(self, api) -> None:
        """40 x "\u00e9" is 40 characters but 80 UTF-8 bytes, beyond bcrypt's input limit."""
        body = {**NEW_USER, "email": "mb@x.com", "password": "\u00e9" * 40}
        resp = api.client.post(USERS, json=body, headers=api.headers(Role.admin))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"
        assert api.user_store.get_by_email("mb@x.com") is None

    def test_multibyte_password_within_72_bytes(self, api) -> None:
        body = {**NEW_USER, "email": "mb@x.com", "password": "\u00e9" * 36}
        resp = api.client.post(USERS, json=body, headers=api.headers(Role.admin))
        assert resp.status_code == 201, resp.text
        login = api.client.post("/api/v1/auth/login", json={"email": "mb@x.com", "password": "\u00e9" * 36})
        assert login.status_code == 200

    def test_delegated_add_users_cannot_mint_admin(self, api) -> None:
        api.user_store.put_role_permissions("manager", PermissionSet(add_users=True).to_dict())
        resp = api.client.post(USERS, json={**NEW_USER, "role": "admin"}, headers=api.headers(Role.manager))
        assert resp.status_code == 403
        resp = api.client.post(USERS, json=NEW_USER, headers=api.headers(Role.manager))
        assert resp.status_code == 201


class TestUpdateUser:
    def test_promote_to_manager(self, api) -> None:
        uid = api.ids[Role.employee]
        resp = api.client.put(f"{USERS}/{uid}", json=_update_body("Emp", "manager"), headers=api.headers(Role.admin))
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["role"] == "manager"
        assert resp.json()["data"]["name"] == "Emp"

    def test_promote_to_admin_conflict(self, api) -> None:
        uid = api.ids[Role.manager]
        resp = api.client.put(f"{USERS}/{uid}", json=_update_body("M", "admin"), headers=api.headers(Role.admin))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "conflict"
        assert api.user_store.get_by_id(uid).role is Role.manager

    def test_self_demotion_forbidden(self, api) -> None:
        uid = api.ids[Role.admin]
        resp = api.client.put(f"{USERS}/{uid}", json=_update_body("A", "manager"), headers=api.headers(Role.admin))
        assert resp.status_code == 403
        assert api.user_store.get_by_id(uid).role is Role.admin

    def test_self_deactivation_forbidden(self, api) -> None:
        uid = api.ids[Role.admin]
        resp = api.client.put(
            f"{USERS}/{uid}",
            json=_update_body("A", "admin", is_active=False),
            headers=api.headers(Role.admin),
        )
        assert resp.status_code == 403

    def test_admin_edits_own_name(self, api) -> None:
        uid = api.ids[Role.admin]
        resp = api.client.put(f"{USERS}/{uid}", json=_update_body("Chief", "admin"), headers=api.headers(Role.admin))
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Chief"

    def test_reactivate(self, api) -> None:
        uid = api.ids[Role.employee]
        api.user_store.update_user(uid, is_active=False)
        resp = api.client.put(
            f"{USERS}/{uid}",
            json=_update_body("Emp", "employee", is_active=True),
            headers=api.headers(Role.admin),
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is True

    def test_missing_user(self, api) -> None:
        resp = api.client.put(f"{USERS}/9999", json=_update_body("X", "employee"), headers=api.headers(Role.admin))
        assert resp.status_code == 404

    def test_non_admin_cannot_edit_admin(self, api) -> None:
        api.user_store.put_role_permissions("manager", PermissionSet(edit_users=True).to_dict())
        uid = api.ids[Role.admin]
        resp = api.client.put(f"{USERS}/{uid}", json=_update_body("Pwned", "admin"), headers=api.headers(Role.manager))
        assert resp.status_code == 403

    def test_employee_forbidden(self, api) -> None:
        uid = api.ids[Role.manager]
        resp = api.client.put(f"{USERS}/{uid}", json=_update_body("M", "employee"), headers=api.headers(Role.employee))
        assert resp.status_code == 403


class TestDeactivateAndPassword:
    def test_soft_delete(self, api) -> None:
        uid = api.ids[Role.employee]
        resp = api.client.delete(f"{USERS}/{uid}", headers=api.headers(Role.admin))
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is False
        assert api.user_store.get_by_id(uid) is not None
        assert api.client.get("/api/v1/auth/me", headers=api.headers(Role.employee)).status_code == 401

    def test_cannot_delete_self(self, api) -> None:
        resp = api.client.delete(f"{USERS}/{api.ids[Role.admin]}", headers=api.headers(Role.admin))
        assert resp.status_code == 403

    def test_manager_lacks_remove_users(self, api) -> None:
        resp = api.client.delete(f"{USERS}/{api.ids[Role.employee]}", headers=api.headers(Role.manager))
        assert resp.status_code == 403

    def test_password_reset_rejects_over_72_bytes(self, api) -> None:
        resp = api.client.put(
            f"{USERS}/{api.ids[Role.employee]}/password",
            json={"new_password": "\u00e9" * 40},
            headers=api.headers(Role.admin),
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_password_reset(self, api) -> None:
        uid = api.ids[Role.employee]
        resp = api.client.put(
            f"{USERS}/{uid}/password",
            json={"new_password": "brand-new-pass"},
            headers=api.headers(Role.admin),
        )
        assert resp.status_code == 200
        login = api.client.post(
            "/api/v1/auth/login",
            json={"email": "employee@taskflow.com", "password": "brand-new-pass"},
        )
        assert login.status_code == 200


class TestProfile:
    def test_get_profile(self, api) -> None:
        resp = api.client.get("/api/v1/user/profile", headers=api.headers(Role.employee))
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "employee@taskflow.com"

    def test_update_profile(self, api) -> None:
        resp = api.client.put(
            "/api/v1/user/profile",
            json={"name": "Eve", "department": "Sales", "position": "Rep", "phone": "555-0100"},
            headers=api.headers(Role.employee),
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["name"] == "Eve"
        assert data["department"] == "Sales"

    def test_profile_cannot_change_role(self, api) -> None:
        resp = api.client.put(
            "/api/v1/user/profile",
            json={"name": "Eve", "role": "admin"},
            headers=api.headers(Role.employee),
        )
        assert resp.status_code == 400
        assert api.user_store.get_by_id(api.ids[Role.employee]).role is Role.employee

    def test_avatar(self, api) -> None:
        ok = api.client.put(
            "/api/v1/user/avatar",
            json={"avatar_url": "https://cdn.example.com/a.png"},
            headers=api.headers(Role.employee),
        )
        assert ok.status_code == 200
        assert api.user_store.get_by_id(api.ids[Role.employee]).avatar_url == "https://cdn.example.com/a.png"
        bad = api.client.put(
            "/api/v1/user/avatar",
            json={"avatar_url": "javascript:alert(1)"},
            headers=api.headers(Role.employee),
        )
        assert bad.status_code == 400


def test_capability_enum_matches_flags() -> None:
    assert set(PermissionSet().to_dict()) == {c.value for c in Capability}
