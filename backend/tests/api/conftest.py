import pytest

from tests.api import API


@pytest.fixture
def register(client):
    """Register a user and return bearer headers for them."""

    async def _register(name: str, password: str = "secret123") -> dict:
        email = f"{name.lower()}@example.com"
        response = await client.post(
            f"{API}/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        user = response.json()

        response = await client.post(
            f"{API}/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        token = response.json()["access_token"]
        return {"id": user["id"], "email": email, "headers": {"Authorization": f"Bearer {token}"}}

    return _register
