import logging

from conftest import PASSWORD, token_for


def test_login_sets_http_only_cookie(client, news_manager):
    res = client.post("/api/auth/login", json={"email": news_manager.email, "password": PASSWORD})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"
    assert body["admin"]["email"] == news_manager.email
    assert body["admin"]["lastLogin"] is not None
    assert "password" not in body["admin"]

    cookie = res.headers["set-cookie"]
    assert cookie.startswith("admin-token=")
    assert "HttpOnly" in cookie
    assert "samesite=strict" in cookie.lower()

    # The cookie jar now carries the session
    res = client.get("/api/auth/verify")
    assert res.status_code == 200
    assert res.json()["admin"]["id"] == str(news_manager.id)


def test_login_is_case_insensitive_on_email(client, news_manager):
    res = client.post("/api/auth/login", json={"email": news_manager.email.upper(), "password": PASSWORD})
    assert res.status_code == 200


def test_login_rejects_bad_credentials(client, news_manager, make_user):
    res = client.post("/api/auth/login", json={"email": news_manager.email, "password": "wrong"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Invalid email or password"}

    res = client.post("/api/auth/login", json={"email": "nobody@neti.com.ph", "password": PASSWORD})
    assert res.status_code == 401

    inactive = make_user(roles=["events_manager"], is_active=False)
    res = client.post("/api/auth/login", json={"email": inactive.email, "password": PASSWORD})
    assert res.status_code == 401


def test_login_validation(client):
    res = client.post("/api/auth/login", json={"email": "someone@neti.com.ph"})
    assert res.status_code == 400
    assert res.json()["error"] == "Email and password are required"

    res = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid email format"


def test_verify_without_cookie(client):
    res = client.get("/api/auth/verify")
    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "No authentication token"}


def test_verify_clears_invalid_cookie(client):
    client.cookies.set("admin-token", "not-a-jwt")
    res = client.get("/api/auth/verify")
    assert res.status_code == 401
    assert res.json()["error"] == "Invalid or expired token"
    assert "admin-token=" in res.headers["set-cookie"]
    assert "Max-Age=0" in res.headers["set-cookie"]


def test_logout_expires_cookie(login, news_manager):
    client = login(news_manager)
    res = client.post("/api/auth/logout")
    assert res.status_code == 200
    assert res.json()["success"] is True
    assert "Max-Age=0" in res.headers["set-cookie"]


def test_profile_lists_permissions(login, super_admin, news_manager):
    res = login(super_admin).get("/api/auth/profile")
    assert res.status_code == 200
    assert res.json()["permissions"] == ["events", "news", "settings", "users"]

    res = login(news_manager).get("/api/auth/profile")
    assert res.json()["permissions"] == ["news"]
    assert res.json()["admin"]["role"] == "news_manager"


def test_profile_requires_authentication(client):
    res = client.get("/api/auth/profile")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_bearer_header_fallback(client, events_manager):
    res = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token_for(events_manager)}"})
    assert res.status_code == 200
    assert res.json()["permissions"] == ["events"]


def test_roles_listing(login, user_manager):
    res = login(user_manager).get("/api/roles")
    assert res.status_code == 200
    roles = {r["name"]: r["permissions"] for r in res.json()["roles"]}
    assert roles == {
        "super_admin": ["events", "news", "settings", "users"],
        "user_manager": ["users"],
        "events_manager": ["events"],
        "news_manager": ["news"],
    }


def test_login_rejects_malformed_email_before_lookup(client, caplog):
    caplog.set_level(logging.INFO, logger="routers.auth")
    res = client.post("/api/auth/login", json={"email": "a@b..c", "password": "x"})

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Invalid email format"}
    assert "Failed login" not in caplog.text
