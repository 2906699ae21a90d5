"""Tests for the session-scoped projects API."""

import pytest

pytestmark = pytest.mark.integration

PAYLOAD = {
    "name": "Navbar",
    "description": "Responsive navbar",
    "language": "react",
    "code": "export const Navbar = () => null",
}


# ==================== AUTH ====================


@pytest.mark.parametrize(
    ("method", "path"),
    [("GET", "/api/projects"), ("POST", "/api/projects"), ("DELETE", "/api/projects/abc")],
)
async def test_requires_authorization_header(client, method, path):
    response = await client.request(method, path, json=PAYLOAD if method == "POST" else None)
    assert response.status_code == 401
    assert "debug_id" in response.json()


async def test_rejects_invalid_token(client):
    response = await client.get("/api/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_rejects_expired_token(client, make_token):
    token = make_token("user-1", expires_in=-60)
    response = await client.get("/api/projects", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


async def test_rejects_token_signed_with_other_secret(client):
    import jwt as pyjwt

    token = pyjwt.encode({"sub": "user-1", "exp": 9999999999}, "someone-else", algorithm="HS256")
    response = await client.get("/api/projects", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


# ==================== CREATE ====================


async def test_create_returns_server_fields(client, auth_headers):
    response = await client.post("/api/projects", json=PAYLOAD, headers=auth_headers())

    assert response.status_code == 201
    body = response.json()
    assert body["id"]
    assert body["createdAt"]
    assert {k: body[k] for k in PAYLOAD} == PAYLOAD


async def test_create_rejects_unknown_language(client, auth_headers):
    response = await client.post(
        "/api/projects",
        json={**PAYLOAD, "language": "svelte"},
        headers=auth_headers(),
    )
    assert response.status_code == 422


async def test_create_requires_code(client, auth_headers):
    payload = {k: v for k, v in PAYLOAD.items() if k != "code"}
    response = await client.post("/api/projects", json=payload, headers=auth_headers())
    assert response.status_code == 422


# ==================== LIST ====================


async def test_list_is_most_recent_first(client, auth_headers):
    headers = auth_headers()
    for name in ["First", "Second", "Third"]:
        await client.post("/api/projects", json={**PAYLOAD, "name": name}, headers=headers)

    response = await client.get("/api/projects", headers=headers)

    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Third", "Second", "First"]


async def test_list_is_scoped_to_caller(client, auth_headers):
    await client.post("/api/projects", json={**PAYLOAD, "name": "Mine"}, headers=auth_headers("user-a"))
    await client.post("/api/projects", json={**PAYLOAD, "name": "Theirs"}, headers=auth_headers("user-b"))

    response = await client.get("/api/projects", headers=auth_headers("user-a"))

    assert [p["name"] for p in response.json()] == ["Mine"]


# ==================== DELETE ====================


async def test_delete_then_404(client, auth_headers):
    headers = auth_headers()
    created = (await client.post("/api/projects", json=PAYLOAD, headers=headers)).json()

    first = await client.delete(f"/api/projects/{created['id']}", headers=headers)
    second = await client.delete(f"/api/projects/{created['id']}", headers=headers)

    assert first.status_code == 200
    assert first.json() == {"status": "deleted"}
    assert second.status_code == 404
    assert (await client.get("/api/projects", headers=headers)).json() == []


async def test_delete_someone_elses_project_is_401(client, auth_headers):
    created = (await client.post("/api/projects", json=PAYLOAD, headers=auth_headers("owner"))).json()

    response = await client.delete(f"/api/projects/{created['id']}", headers=auth_headers("intruder"))

    assert response.status_code == 401
    still_there = await client.get("/api/projects", headers=auth_headers("owner"))
    assert len(still_there.json()) == 1


# ==================== MIDDLEWARE ====================


async def test_request_id_is_echoed(client, auth_headers):
    response = await client.get(
        "/api/projects",
        headers={**auth_headers(), "X-Request-ID": "req-123"},
    )
    assert response.headers["X-Request-ID"] == "req-123"


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_ready_checks_database(client):
    response = await client.get("/api/ready")
    assert response.status_code == 200
    assert response.json()["checks"] == {"database": True}
