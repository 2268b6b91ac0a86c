from datetime import datetime, timedelta, timezone

import pytest


@pytest.fixture
def admin_headers(supabase):
    return supabase.add_user("admin-1", role="administrator", email="admin@example.com")


def _log(supabase, level, category, message, created_at=None, user_id=None):
    row = {
        "id": f"log-{len(supabase.tables.get('system_logs', []))}",
        "level": level,
        "category": category,
        "message": message,
        "user_id": user_id,
        "created_at": (created_at or datetime.now(timezone.utc)).isoformat(),
    }
    supabase.tables.setdefault("system_logs", []).append(row)


def test_list_users_and_stats(client, supabase, admin_headers):
    supabase.add_user("u1")
    supabase.add_user("u2", is_active=False)

    users = client.get("/api/v1/admin/users", headers=admin_headers).json()
    assert {u["id"] for u in users} == {"admin-1", "u1", "u2"}

    stats = client.get("/api/v1/admin/users?stats=true", headers=admin_headers).json()
    assert stats == {"total": 3, "active": 2, "inactive": 1, "admins": 1, "regular": 2}


def test_create_user_generates_temporary_password(client, supabase, admin_headers):
    response = client.post(
        "/api/v1/admin/users",
        headers=admin_headers,
        json={"email": "new@example.com", "full_name": "New Hire", "department": "Finance"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["role"] == "regular"
    assert len(body["temporary_password"]) == 12
    assert supabase.auth.admin.created[0]["email"] == "new@example.com"
    assert supabase.rows("system_logs", category="USER")


def test_create_user_rejects_duplicate_email(client, supabase, admin_headers):
    supabase.add_user("u1", email="taken@example.com")
    response = client.post(
        "/api/v1/admin/users",
        headers=admin_headers,
        json={"email": "taken@example.com", "full_name": "Someone"},
    )
    assert response.status_code == 409


def test_update_user_promotes_to_administrator(client, supabase, admin_headers):
    supabase.add_user("u1")
    response = client.put("/api/v1/admin/users/u1", headers=admin_headers, json={"role": "administrator"})
    assert response.status_code == 200
    assert response.json()["role"] == "administrator"


def test_update_user_rejects_unknown_role(client, supabase, admin_headers):
    supabase.add_user("u1")
    response = client.put("/api/v1/admin/users/u1", headers=admin_headers, json={"role": "owner"})
    assert response.status_code == 422


def test_admin_cannot_demote_or_deactivate_self(client, admin_headers):
    assert client.put("/api/v1/admin/users/admin-1", headers=admin_headers, json={"role": "regular"}).status_code == 400
    assert client.put("/api/v1/admin/users/admin-1", headers=admin_headers, json={"is_active": False}).status_code == 400
    assert client.delete("/api/v1/admin/users/admin-1", headers=admin_headers).status_code == 400


def test_update_missing_user_is_not_found(client, admin_headers):
    response = client.put("/api/v1/admin/users/nobody", headers=admin_headers, json={"full_name": "X"})
    assert response.status_code == 404


def test_delete_user_removes_profile_and_memberships(client, supabase, admin_headers):
    supabase.add_user("u1")
    supabase.add_membership("t1", "u1", "member")
    assert client.delete("/api/v1/admin/users/u1", headers=admin_headers).status_code == 204
    assert supabase.rows("user_profiles", id="u1") == []
    assert supabase.rows("team_members", user_id="u1") == []
    assert supabase.auth.admin.deleted == ["u1"]


def test_bulk_deactivate(client, supabase, admin_headers):
    supabase.add_user("u1")
    supabase.add_user("u2")
    response = client.post(
        "/api/v1/admin/users/bulk",
        headers=admin_headers,
        json={"action": "deactivate", "user_ids": ["u1", "u2"]},
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Successfully deactivated 2 users", "updated_count": 2}
    assert supabase.rows("user_profiles", id="u1")[0]["is_active"] is False


def test_bulk_rejects_unknown_action(client, admin_headers):
    response = client.post(
        "/api/v1/admin/users/bulk",
        headers=admin_headers,
        json={"action": "delete", "user_ids": ["u1"]},
    )
    assert response.status_code == 422


def test_reset_password(client, supabase, admin_headers):
    supabase.add_user("u1")
    response = client.post("/api/v1/admin/users/u1/reset-password", headers=admin_headers)
    assert response.status_code == 200
    password = response.json()["temporary_password"]
    assert supabase.auth.admin.updated == [("u1", {"password": password})]


def test_list_logs_filters_and_paginates(client, supabase, admin_headers):
    for i in range(5):
        _log(supabase, "ERROR", "API", f"Request timeout {i}")
    _log(supabase, "INFO", "USER", "User logged in", user_id="u1")

    body = client.get("/api/v1/admin/logs?levels=error&limit=2&page=2", headers=admin_headers).json()
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 5, "total_pages": 3}
    assert len(body["logs"]) == 2
    assert all(log["level"] == "ERROR" for log in body["logs"])

    body = client.get("/api/v1/admin/logs?search=LOGGED", headers=admin_headers).json()
    assert [log["message"] for log in body["logs"]] == ["User logged in"]

    body = client.get("/api/v1/admin/logs?user_id=u1&categories=USER", headers=admin_headers).json()
    assert body["pagination"]["total"] == 1


def test_list_logs_rejects_unknown_level(client, admin_headers):
    assert client.get("/api/v1/admin/logs?levels=LOUD", headers=admin_headers).status_code == 400


def test_log_stats(client, supabase, admin_headers):
    _log(supabase, "ERROR", "API", "recent")
    _log(supabase, "CRITICAL", "SECURITY", "old", created_at=datetime.now(timezone.utc) - timedelta(days=3))
    stats = client.get("/api/v1/admin/logs?stats=true", headers=admin_headers).json()
    assert stats["total"] == 2
    assert stats["error"] == 1
    assert stats["critical"] == 1
    assert stats["categories"] == {"API": 1, "SECURITY": 1}
    assert stats["last_24_hours"] == 1


def test_export_logs_as_csv(client, supabase, admin_headers):
    _log(supabase, "WARN", "SYSTEM", "Cache cleared")
    response = client.post("/api/v1/admin/logs/export", headers=admin_headers, json={"format": "csv"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("created_at,level,category,message")
    assert "Cache cleared" in lines[1]


def test_export_rejects_unknown_format(client, admin_headers):
    response = client.post("/api/v1/admin/logs/export", headers=admin_headers, json={"format": "xml"})
    assert response.status_code == 422


def test_resolve_error(client, supabase, admin_headers):
    supabase.tables["error_logs"] = [{
        "id": "err-1",
        "error": "boom",
        "error_type": "API_ERROR",
        "severity": "HIGH",
        "url": "/api/v1/teams",
        "resolved": False,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }]
    assert len(client.get("/api/v1/admin/logs/errors?resolved=false", headers=admin_headers).json()) == 1

    response = client.post("/api/v1/admin/logs/errors/err-1/resolve", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["resolved_by"] == "admin@example.com"
    assert client.get("/api/v1/admin/logs/errors?resolved=false", headers=admin_headers).json() == []

    assert client.post("/api/v1/admin/logs/errors/missing/resolve", headers=admin_headers).status_code == 404


def test_create_user_rolls_back_auth_user_when_profile_insert_fails(client, supabase, admin_headers):
    supabase.fail_inserts.add("user_profiles")
    response = client.post(
        "/api/v1/admin/users",
        headers=admin_headers,
        json={"email": "new@example.com", "full_name": "New Hire"},
    )
    assert response.status_code == 500
    assert len(supabase.auth.admin.created_ids) == 1
    assert supabase.auth.admin.deleted == supabase.auth.admin.created_ids
    assert supabase.rows("user_profiles", email="new@example.com") == []


def test_log_stats_accept_trimmed_fractional_seconds(client, supabase, admin_headers):
    recent = datetime.now(timezone.utc) - timedelta(hours=1)
    supabase.tables["system_logs"] = [{
        "id": "log-trimmed",
        "level": "INFO",
        "category": "SYSTEM",
        "message": "Cache warmed",
        "created_at": recent.strftime("%Y-%m-%dT%H:%M:%S") + ".12345+00:00",
    }]
    response = client.get("/api/v1/admin/logs?stats=true", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["last_24_hours"] == 1


def test_admin_console_access_is_logged(client, supabase, admin_headers):
    user_headers = supabase.add_user("u1")
    assert client.get("/api/v1/admin/users", headers=user_headers).status_code == 403
    assert client.get("/api/v1/admin/logs/access", headers=user_headers).status_code == 403

    denied = client.get("/api/v1/admin/logs/access?success=false", headers=admin_headers).json()
    assert denied["total"] == 2
    assert {(log["user_id"], log["action"], log["resource"]) for log in denied["logs"]} == {
        ("u1", "can_manage_users", "GET /api/v1/admin/users"),
        ("u1", "can_view_logs", "GET /api/v1/admin/logs/access"),
    }

    granted = client.get("/api/v1/admin/logs/access?success=true&limit=1", headers=admin_headers).json()
    assert granted["logs"][0]["user_id"] == "admin-1"
    assert granted["logs"][0]["resource"] == "GET /api/v1/admin/logs/access"
