"""Directory listing endpoint tests."""

from pathlib import Path

from fastapi.testclient import TestClient


def _login(client: TestClient, path: str, password: str) -> None:
    response = client.post("/api/auth/login", json={"path": path, "password": password})
    assert response.status_code == 200


def test_root_listing_order_and_filtering(client: TestClient) -> None:
    """Markers, symlinks and hidden directories are omitted; dirs sort first."""
    response = client.get("/api/list")
    assert response.status_code == 200
    data = response.json()

    assert data["path"] == ""
    assert data["requiresAuth"] is False
    assert data["authorized"] is True
    assert [e["name"] for e in data["entries"]] == [
        "a",
        "movies",
        "vault",
        "Zeta",
        "alpha.txt",
        "Beta.txt",
        "public.txt",
    ]


def test_entry_fields(client: TestClient) -> None:
    entries = {e["name"]: e for e in client.get("/api/list", params={"path": "/"}).json()["entries"]}

    public = entries["public.txt"]
    assert public["kind"] == "file"
    assert public["path"] == "public.txt"
    assert public["size"] == 11
    assert public["mimeType"] == "text/plain"
    assert isinstance(public["mtime"], int)
    assert public["requiresAuth"] is False
    assert public["authorized"] is True

    protected = entries["a"]
    assert protected["kind"] == "dir"
    assert protected["size"] is None
    assert protected["mimeType"] is None
    assert protected["requiresAuth"] is True
    assert protected["authorized"] is False


def test_protected_listing_requires_auth(client: TestClient) -> None:
    response = client.get("/api/list", params={"path": "a/b"})
    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_REQUIRED"


def test_protected_listing_after_login(client: TestClient) -> None:
    _login(client, "a", "secret")

    data = client.get("/api/list", params={"path": "a"}).json()

    assert data["requiresAuth"] is True
    assert data["authorized"] is True
    assert [e["name"] for e in data["entries"]] == ["b", "inner.txt"]
    assert all(e["authorized"] for e in data["entries"])

    root_entries = {e["name"]: e for e in client.get("/api/list").json()["entries"]}
    assert root_entries["a"]["authorized"] is True
    assert root_entries["vault"]["authorized"] is False


def test_nested_password_needs_its_own_login(client: TestClient, media_root: Path) -> None:
    """Scopes match exactly; a grant for 'a' does not cover 'a/b'."""
    (media_root / "a" / "b" / ".password").write_text("inner")
    _login(client, "a", "secret")

    entries = {e["name"]: e for e in client.get("/api/list", params={"path": "a"}).json()["entries"]}
    assert entries["b"]["requiresAuth"] is True
    assert entries["b"]["authorized"] is False

    response = client.get("/api/list", params={"path": "a/b"})
    assert response.json()["code"] == "AUTH_REQUIRED"


def test_hidden_directory_is_reachable_directly(client: TestClient) -> None:
    data = client.get("/api/list", params={"path": "hidden"}).json()
    assert [e["name"] for e in data["entries"]] == ["visible.txt"]


def test_listing_errors(client: TestClient) -> None:
    cases = {
        "../etc": (400, "BAD_REQUEST"),
        "a//b": (400, "BAD_REQUEST"),
        "public.txt": (400, "BAD_REQUEST"),
        "missing": (404, "NOT_FOUND"),
        "a/.password": (404, "NOT_FOUND"),
        "linkdir": (403, "FORBIDDEN"),
    }
    for path, (status, code) in cases.items():
        response = client.get("/api/list", params={"path": path})
        assert response.status_code == status, path
        assert response.json()["code"] == code, path


def test_error_bodies_do_not_leak_paths(client: TestClient, media_root: Path) -> None:
    response = client.get("/api/list", params={"path": "linkdir"})
    assert str(media_root) not in response.text
    assert set(response.json()) == {"code", "message"}
