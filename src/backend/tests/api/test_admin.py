"""
Tests for admin triage endpoints.
"""

import pytest
from httpx import AsyncClient


async def demo_token(client: AsyncClient, role: str = "student", official_id: str | None = None) -> str:
    body = {"role": role, "official_id": official_id}
    return (await client.post("/api/v1/auth/demo", json=body)).json()["access_token"]


async def student_issue_then_promote(client: AsyncClient) -> tuple[str, dict, dict]:
    """Create an issue as a demo student, then switch the same demo user to admin."""
    student = {"Authorization": f"Bearer {await demo_token(client)}"}
    issue_id = (
        await client.post(
            "/api/v1/issues",
            json={"title": "Broken AC", "description": "Room 204", "category_id": "facility"},
            headers=student,
        )
    ).json()["id"]
    promoted = await client.put(
        "/api/v1/users/me/role", json={"role": "admin", "official_id": "ST-1"}, headers=student
    )
    admin = {"Authorization": f"Bearer {promoted.json()['access_token']}"}
    return issue_id, student, admin


@pytest.mark.unit
class TestAdminTriage:
    """Status and note updates."""

    async def test_solve_and_annotate(self, client: AsyncClient) -> None:
        issue_id, _, admin = await student_issue_then_promote(client)

        solved = await client.put(f"/api/v1/admin/issues/{issue_id}/status", json={"status": "solved"}, headers=admin)
        assert solved.status_code == 200
        assert solved.json()["status"] == "solved"

        noted = await client.put(
            f"/api/v1/admin/issues/{issue_id}/note", json={"note": "Fixed by facilities team"}, headers=admin
        )
        assert noted.status_code == 200
        data = noted.json()
        assert data["status"] == "solved"
        assert data["admin_notes"] == "Fixed by facilities team"
        assert data["admin_updated_by"] == "Demo User"
        assert data["admin_updated_at"] is not None

    async def test_students_are_forbidden(self, client: AsyncClient) -> None:
        student = {"Authorization": f"Bearer {await demo_token(client)}"}

        response = await client.put("/api/v1/admin/issues/any/status", json={"status": "solved"}, headers=student)

        assert response.status_code == 403

    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.put("/api/v1/admin/issues/any/note", json={"note": "x"})

        assert response.status_code == 401

    async def test_invalid_status(self, client: AsyncClient) -> None:
        issue_id, _, admin = await student_issue_then_promote(client)

        response = await client.put(f"/api/v1/admin/issues/{issue_id}/status", json={"status": "closed"}, headers=admin)

        assert response.status_code == 422

    async def test_missing_issue(self, client: AsyncClient) -> None:
        admin = {"Authorization": f"Bearer {await demo_token(client, 'management', 'M-1')}"}

        response = await client.put("/api/v1/admin/issues/missing/status", json={"status": "solved"}, headers=admin)

        assert response.status_code == 404
