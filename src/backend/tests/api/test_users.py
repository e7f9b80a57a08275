"""
Tests for user profile endpoints.
"""

import pytest
from httpx import AsyncClient

from core.security import decode_token


async def demo_headers(client: AsyncClient, role: str = "student", official_id: str | None = None) -> dict:
    body = {"role": role, "official_id": official_id}
    token = (await client.post("/api/v1/auth/demo", json=body)).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.unit
class TestUserProfile:
    """Profile, role and stats."""

    async def test_me(self, client: AsyncClient) -> None:
        headers = await demo_headers(client)

        response = await client.get("/api/v1/users/me", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "student"
        assert data["display_name"] == "Demo User"
        assert data["official_id"] is None

    async def test_me_requires_auth(self, client: AsyncClient) -> None:
        assert (await client.get("/api/v1/users/me")).status_code == 401

    async def test_role_change_issues_new_token(self, client: AsyncClient) -> None:
        headers = await demo_headers(client)

        response = await client.put(
            "/api/v1/users/me/role", json={"role": "admin", "official_id": "ST-3"}, headers=headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["home"] == "/admin"
        claims = decode_token(data["access_token"])
        assert claims["role"] == "admin"
        assert claims["official_id"] == "ST-3"

        me = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.json()["role"] == "admin"

    async def test_role_change_needs_official_id_for_staff(self, client: AsyncClient) -> None:
        headers = await demo_headers(client)

        response = await client.put("/api/v1/users/me/role", json={"role": "management"}, headers=headers)

        assert response.status_code == 422

    async def test_activity_stats(self, client: AsyncClient) -> None:
        headers = await demo_headers(client)
        issue = (
            await client.post(
                "/api/v1/issues",
                json={"title": "Broken AC", "description": "Too hot", "category_id": "facility"},
                headers=headers,
            )
        ).json()
        await client.post(f"/api/v1/issues/{issue['id']}/vote", headers=headers)

        response = await client.get("/api/v1/users/me/stats", headers=headers)

        assert response.json() == {"issues_posted": 1, "votes_received": 1, "voted_on": 1}
