from tests.api import API


async def test_register_login_me(client, register):
    olivia = await register("Olivia")

    response = await client.get(f"{API}/auth/me", headers=olivia["headers"])

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "olivia@example.com"
    assert "password_hash" not in body


async def test_duplicate_registration_conflicts(client, register):
    await register("Olivia")

    response = await client.post(
        f"{API}/auth/register",
        json={"name": "Olivia", "email": "OLIVIA@example.com", "password": "secret123"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


async def test_bad_credentials(client, register):
    await register("Olivia")

    response = await client.post(
        f"{API}/auth/login", json={"email": "olivia@example.com", "password": "nope-nope"}
    )

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid email or password", "code": "UNAUTHENTICATED"}


async def test_missing_or_invalid_token(client):
    assert (await client.get(f"{API}/projects/")).status_code == 401
    response = await client.get(
        f"{API}/projects/", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


async def test_refresh_token_flow(client, register):
    await register("Olivia")
    tokens = (
        await client.post(
            f"{API}/auth/login", json={"email": "olivia@example.com", "password": "secret123"}
        )
    ).json()

    # Access tokens are not accepted for refresh, and vice versa
    response = await client.post(
        f"{API}/auth/refresh", headers={"Authorization": f"Bearer {tokens['access_token']}"}
    )
    assert response.status_code == 401
    response = await client.get(
        f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
    )
    assert response.status_code == 401

    response = await client.post(
        f"{API}/auth/refresh", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
    )
    assert response.status_code == 200
    assert response.json()["access_token"]


async def test_request_id_echoed(client):
    response = await client.get(f"{API}/health", headers={"X-Request-ID": "abc-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.json()["status"] == "healthy"
