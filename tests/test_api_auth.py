"""Auth endpoints and the session cookie, through the HTTP stack."""

from datetime import timedelta

from crm.core.config import settings
from crm.db.models import UserSession
from crm.db.types import utcnow


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_register_login_me_logout(client):
    response = await client.post(
        "/auth/register", json={"email": "Alice@Example.com", "password": "hunter22"}
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "alice@example.com"
    assert body["data"]["user"]["isPlatformAdmin"] is False
    assert "passwordHash" not in body["data"]["user"]

    response = await client.post(
        "/auth/login", json={"email": "alice@example.com", "password": "hunter22"}
    )
    assert response.status_code == 200
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in set_cookie
    assert "Max-Age=2592000" in set_cookie
    assert "samesite=lax" in set_cookie.lower()

    response = await client.get("/auth/me")
    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "alice@example.com"

    response = await client.post("/auth/logout")
    assert response.status_code == 200

    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


async def test_register_duplicate(client, make_user):
    make_user("taken@test.com")
    response = await client.post(
        "/auth/register", json={"email": "taken@test.com", "password": "hunter22"}
    )
    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error": {"code": "USER_EXISTS", "message": "A user with this email already exists"},
    }


async def test_register_short_password(client):
    response = await client.post(
        "/auth/register", json={"email": "bob@test.com", "password": "12345"}
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"]


async def test_login_wrong_password(client, make_user):
    user = make_user()
    response = await client.post("/auth/login", json={"email": user.email, "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


async def test_login_unknown_email(client):
    response = await client.post("/auth/login", json={"email": "ghost@test.com", "password": "x"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


async def test_no_cookie(client):
    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == {"code": "UNAUTHORIZED", "message": "Session not found"}


async def test_invalid_cookie(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "not-a-real-token")
    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


async def test_expired_cookie(client, db, make_user, login_as):
    user = make_user()
    token = login_as(user)
    session = db.query(UserSession).filter(UserSession.token == token).one()
    session.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()

    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "SESSION_EXPIRED"

    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


async def test_mutation_requires_csrf_header(client):
    response = await client.post(
        "/auth/register",
        json={"email": "csrf@test.com", "password": "hunter22"},
        headers={"X-Requested-With": ""},
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "CSRF_REQUIRED"
