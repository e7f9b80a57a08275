"""
Pytest fixtures for IssueBoard backend tests.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("IDENTITY_TOOLKIT_API_KEY", "test-identity-key")
os.environ.setdefault("DEMO_MODE_ENABLED", "true")
os.environ.setdefault("ISSUE_FEED_REFRESH_SECONDS", "0")
os.environ["AZURE_COSMOS_ENDPOINT"] = ""
os.environ["AZURE_COSMOS_CONNECTION_STRING"] = ""
os.environ.pop("LOCAL_CACHE_DIR", None)

from db.local_cache import MemoryLocalCache  # noqa: E402
from models.cosmos_documents import IssueDocument  # noqa: E402
from repositories.issue_repository import IssueRepository  # noqa: E402
from repositories.local_issue_backend import LocalIssueBackend  # noqa: E402
from schemas.user import Principal, SessionMode  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_process_state() -> Any:
    """Drop cached backends, sessions and revoked tokens between tests."""
    from repositories.provider import close_backends
    from services.session import get_session_registry

    yield
    get_session_registry().clear()
    close_backends()


@pytest.fixture
async def app() -> Any:
    """Create FastAPI application for testing."""
    from main import app as fastapi_app

    return fastapi_app


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Origin": "http://localhost:3000"},
    ) as ac:
        yield ac


# =============================================================================
# Principals
# =============================================================================


@pytest.fixture
def student() -> Principal:
    return Principal(uid="student-a", email="a@example.com", display_name="Student A", role="student")


@pytest.fixture
def other_student() -> Principal:
    return Principal(uid="student-b", email="b@example.com", display_name="Student B", role="student")


@pytest.fixture
def admin() -> Principal:
    return Principal(
        uid="admin-1",
        email="admin@example.com",
        display_name="Dana Admin",
        role="admin",
        official_id="STAFF-001",
    )


@pytest.fixture
def demo_student() -> Principal:
    return Principal(
        uid="demo-student",
        email="dummy@example.com",
        display_name="Demo User",
        role="student",
        mode=SessionMode.DEMO,
    )


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def local_backend() -> LocalIssueBackend:
    """Local backend over an in-memory cache slot."""
    return LocalIssueBackend(MemoryLocalCache(), "test-slot")


@pytest.fixture
def repository(local_backend: LocalIssueBackend) -> IssueRepository:
    return IssueRepository(local_backend, enforce_ownership=True)


@pytest.fixture
def make_issue() -> Any:
    """Factory for issue documents with distinct creation times."""
    base = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def _make(
        minutes: int = 0,
        votes: list[str] | None = None,
        status: str = "pending",
        category_id: str = "facility",
        author_id: str = "student-a",
        **extra: Any,
    ) -> IssueDocument:
        created = base + timedelta(minutes=minutes)
        return IssueDocument(
            title=extra.pop("title", f"Issue {minutes}"),
            description=extra.pop("description", "Something is broken"),
            category_id=category_id,
            author_id=author_id,
            author_name="Student A",
            author_email="a@example.com",
            status=status,
            votes=votes or [],
            created_at=created,
            updated_at=created,
            **extra,
        )

    return _make


@pytest.fixture
def sample_issue_data() -> dict[str, Any]:
    """Cosmos-shaped issue document."""
    return {
        "id": "issue-123",
        "title": "Broken AC",
        "description": "The AC in room 204 is broken",
        "category_id": "facility",
        "author_id": "student-a",
        "author_name": "Student A",
        "author_email": "a@example.com",
        "status": "pending",
        "votes": [],
        "created_at": "2024-03-01T12:00:00+00:00",
        "updated_at": "2024-03-01T12:00:00+00:00",
        "_etag": '"00000000-0000-0000-0000-000000000000"',
        "_ts": 1709294400,
    }
