from types import SimpleNamespace

from bizplan.database import supabase_client
from bizplan.database.supabase_client import SupabaseClient
from bizplan.modules.auth.service import AuthService


def test_missing_token_is_unauthorized_not_forbidden(client):
    response = client.get("/api/v1/admin/users")
    assert response.status_code == 401


def test_invalid_token_is_unauthorized(client):
    response = client.get("/api/v1/admin/users", headers={"Authorization": "Bearer forged"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_token_without_profile_is_unauthorized(client, supabase):
    headers = supabase.add_user("ghost", with_profile=False)
    response = client.get("/api/v1/auth/me", headers=headers)
    assert response.status_code == 401


def test_regular_user_is_forbidden_from_admin(client, supabase):
    headers = supabase.add_user("u1")
    assert client.get("/api/v1/admin/users", headers=headers).status_code == 403
    assert client.get("/api/v1/admin/logs", headers=headers).status_code == 403


def test_deactivated_administrator_is_forbidden(client, supabase):
    headers = supabase.add_user("admin-1", role="administrator", is_active=False)
    assert client.get("/api/v1/admin/users", headers=headers).status_code == 403


def test_me_reports_system_permissions(client, supabase):
    headers = supabase.add_user("admin-1", role="administrator")
    body = client.get("/api/v1/auth/me", headers=headers).json()
    assert body["role"] == "administrator"
    assert body["system_permissions"]["can_access_admin"] is True
    assert "system:view_logs" in body["permissions"]

    headers = supabase.add_user("u1")
    body = client.get("/api/v1/auth/me", headers=headers).json()
    assert body["system_permissions"] == {
        "can_access_admin": False,
        "can_manage_users": False,
        "can_view_logs": False,
        "can_create_team": True,
        "can_create_plan": True,
    }


def test_role_change_takes_effect_on_next_request(client, supabase):
    headers = supabase.add_user("u1")
    assert client.get("/api/v1/admin/users", headers=headers).status_code == 403
    supabase.rows("user_profiles", id="u1")[0]["role"] = "administrator"
    assert client.get("/api/v1/admin/users", headers=headers).status_code == 200


def test_login_returns_access_token(client, supabase):
    supabase.add_user("u1", email="u1@example.com")
    response = client.post("/api/v1/auth/login", json={"email": "u1@example.com", "password": "correct-horse"})
    assert response.status_code == 200
    assert response.json()["access_token"] == "token-u1"


def test_login_with_wrong_password_is_unauthorized(client, supabase):
    supabase.add_user("u1", email="u1@example.com")
    response = client.post("/api/v1/auth/login", json={"email": "u1@example.com", "password": "nope"})
    assert response.status_code == 401


def test_register_creates_regular_profile(client, supabase):
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "new@example.com", "password": "s3cret-pass", "full_name": "New Person"},
    )
    assert response.status_code == 201
    profile = supabase.rows("user_profiles", email="new@example.com")[0]
    assert profile["role"] == "regular"
    assert profile["is_active"] is True


def test_permission_matrix_requires_authentication(client, supabase):
    assert client.get("/api/v1/auth/permission-matrix").status_code == 401
    headers = supabase.add_user("u1")
    body = client.get("/api/v1/auth/permission-matrix", headers=headers).json()
    assert body["team"]["roles"]["owner"]


def test_ready_reports_supabase_failure(client, supabase):
    assert client.get("/ready").status_code == 200
    supabase.fail_tables.add("user_profiles")
    response = client.get("/ready")
    assert response.status_code == 503
    assert client.get("/health").json() == {"status": "healthy"}


def test_login_runs_on_a_session_client_not_the_shared_one(client, supabase, session_supabase):
    supabase.add_user("u1", email="u1@example.com")
    response = client.post("/api/v1/auth/login", json={"email": "u1@example.com", "password": "correct-horse"})
    assert response.status_code == 200
    assert session_supabase.auth.signed_in == ["u1"]
    assert supabase.auth.signed_in == []


def test_session_clients_are_created_per_call(monkeypatch):
    created = []

    def fake_create_client(url, key, options=None):
        created.append(SimpleNamespace(url=url, key=key, options=options))
        return created[-1]

    monkeypatch.setattr(supabase_client, "create_client", fake_create_client)
    first = SupabaseClient.new_session_client()
    second = SupabaseClient.new_session_client()
    assert first is not second
    assert len(created) == 2
    assert first.options.persist_session is False
    assert first.options.auto_refresh_token is False


def test_register_rolls_back_auth_user_when_profile_insert_fails(client, supabase):
    supabase.fail_inserts.add("user_profiles")
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "new@example.com", "password": "s3cret-pass", "full_name": "New Person"},
    )
    assert response.status_code == 500
    assert len(supabase.auth.signed_up) == 1
    assert supabase.auth.admin.deleted == supabase.auth.signed_up


def test_logout_revokes_the_callers_session(client, supabase):
    headers = supabase.add_user("u1")
    assert client.post("/api/v1/auth/logout", headers=headers).status_code == 200
    assert supabase.auth.admin.signed_out == ["token-u1"]


def test_token_lookup_returns_identity_only(supabase):
    supabase.add_user("u1", email="u1@example.com")
    assert AuthService(supabase).get_current_user("token-u1") == {"id": "u1", "email": "u1@example.com"}
