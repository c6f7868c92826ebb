"""Login, logout and session endpoint tests."""

import pytest
from fastapi.testclient import TestClient

from mlist.app import create_app
from mlist.auth import SESSION_COOKIE_NAME
from mlist.config import Settings


def _login(client: TestClient, path: str, password: str):
    return client.post("/api/auth/login", json={"path": path, "password": password})


def test_me_without_session(client: TestClient) -> None:
    response = client.get("/api/me")

    assert response.status_code == 200
    assert response.json() == {"authenticated": False, "scopes": [], "expiresAt": None}


def test_login_success(client: TestClient) -> None:
    """Logging in through a nested file unlocks its nearest anchor."""
    response = _login(client, "a/b/deep.txt", "secret")

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["scope"] == "a"
    assert data["expiresAt"].endswith("Z")

    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in cookie
    assert "Max-Age=1800" in cookie
    assert "Path=/" in cookie
    assert "samesite=lax" in cookie.lower()
    assert "Secure" not in cookie

    me = client.get("/api/me").json()
    assert me["authenticated"] is True
    assert me["scopes"] == ["a"]
    assert me["expiresAt"] == data["expiresAt"]


def test_second_login_extends_same_session(client: TestClient) -> None:
    _login(client, "a", "secret")
    first_sid = client.cookies[SESSION_COOKIE_NAME]

    response = _login(client, "vault/gold.txt", "vault-pass")

    assert response.status_code == 200
    assert response.json()["scope"] == "vault"
    assert client.cookies[SESSION_COOKIE_NAME] == first_sid
    assert client.get("/api/me").json()["scopes"] == ["a", "vault"]


def test_wrong_password(client: TestClient) -> None:
    response = _login(client, "a", "nope")

    assert response.status_code == 401
    assert response.json() == {"code": "UNAUTHORIZED", "message": "Invalid password."}
    assert "set-cookie" not in response.headers


def test_public_path_cannot_be_unlocked(client: TestClient) -> None:
    response = _login(client, "movies", "anything")

    assert response.status_code == 400
    assert response.json()["message"] == "The target path is public."


@pytest.mark.parametrize(
    ("path", "status"),
    [("../a", 400), ("a/.password", 404), ("missing", 404), ("linkdir", 403)],
)
def test_login_path_errors(client: TestClient, path: str, status: int) -> None:
    assert _login(client, path, "secret").status_code == status


def test_login_body_validation(client: TestClient) -> None:
    response = client.post("/api/auth/login", json={"path": "a"})

    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"


def test_rate_limiting(settings: Settings) -> None:
    """The failure reaching the limit blocks, even the right password."""
    settings.login_max_failures = 2
    client = TestClient(create_app(settings))

    assert _login(client, "a", "wrong").status_code == 401

    blocked = _login(client, "a", "wrong")
    assert blocked.status_code == 429
    assert blocked.json()["code"] == "RATE_LIMITED"
    assert "Retry in" in blocked.json()["message"]

    assert _login(client, "a", "secret").status_code == 429


def test_rate_limit_is_per_scope(settings: Settings) -> None:
    settings.login_max_failures = 1
    client = TestClient(create_app(settings))

    assert _login(client, "a", "wrong").status_code == 429
    assert _login(client, "vault", "vault-pass").status_code == 200


def test_success_resets_failures(settings: Settings) -> None:
    settings.login_max_failures = 2
    client = TestClient(create_app(settings))

    assert _login(client, "a", "wrong").status_code == 401
    assert _login(client, "a", "secret").status_code == 200
    assert _login(client, "a", "wrong").status_code == 401


def test_logout(client: TestClient) -> None:
    _login(client, "a", "secret")

    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{SESSION_COOKIE_NAME}=")
    assert "Max-Age=0" in cookie

    assert client.get("/api/me").json()["authenticated"] is False
    assert client.get("/d/a/inner.txt").status_code == 401


def test_logged_out_token_is_dead(client: TestClient) -> None:
    """A copied token stops working after logout."""
    _login(client, "a", "secret")
    sid = client.cookies[SESSION_COOKIE_NAME]
    client.post("/api/auth/logout")

    response = client.get("/api/me", headers={"Cookie": f"{SESSION_COOKIE_NAME}={sid}"})
    assert response.json()["authenticated"] is False


def test_secure_cookie_flag(settings: Settings) -> None:
    settings.secure_cookies = True
    client = TestClient(create_app(settings), base_url="https://testserver")

    response = _login(client, "a", "secret")

    assert "Secure" in response.headers["set-cookie"]
