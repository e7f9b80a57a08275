"""
Tests for Cosmos DB user repository.
"""

from unittest.mock import AsyncMock, patch

import pytest
from azure.core.exceptions import ServiceRequestError

from core.exceptions import BackendUnavailable
from models.cosmos_documents import UserDocument
from repositories.cosmos_user_repository import CosmosUserRepository


@pytest.fixture
def sample_user_doc() -> UserDocument:
    """Create a sample user document."""
    return UserDocument(
        id="uid-123",
        email="test@example.com",
        display_name="Test User",
        role="management",
        official_id="  MGMT-7 ",
    )


@pytest.mark.unit
class TestCosmosUserRepository:
    """Test CosmosUserRepository operations."""

    @pytest.mark.asyncio
    async def test_get_by_id_returns_user(self, sample_user_doc) -> None:
        """Test getting user by ID."""
        with patch("repositories.cosmos_user_repository.read_item", new_callable=AsyncMock) as mock_read:
            mock_read.return_value = sample_user_doc.model_dump(mode="json")

            result = await CosmosUserRepository().get_by_id("uid-123")

            assert result is not None
            assert result.id == "uid-123"
            assert result.role == "management"
            assert result.official_id == "MGMT-7"
            mock_read.assert_awaited_once_with("users", "uid-123", partition_key="uid-123")

    @pytest.mark.asyncio
    async def test_get_by_id_returns_none_for_missing(self) -> None:
        """Test getting non-existent user returns None."""
        with patch("repositories.cosmos_user_repository.read_item", new_callable=AsyncMock) as mock_read:
            mock_read.return_value = None

            assert await CosmosUserRepository().get_by_id("non-existent-id") is None

    @pytest.mark.asyncio
    async def test_save_upserts_json_document(self, sample_user_doc) -> None:
        """Test saving writes a JSON-safe document."""
        with patch("repositories.cosmos_user_repository.upsert_item", new_callable=AsyncMock) as mock_upsert:
            await CosmosUserRepository().save(sample_user_doc)

            container, body = mock_upsert.call_args.args
            assert container == "users"
            assert body["id"] == "uid-123"
            assert body["role"] == "management"
            assert isinstance(body["updated_at"], str)

    @pytest.mark.asyncio
    async def test_store_failure(self) -> None:
        """Test SDK failures surface as BackendUnavailable."""
        with patch("repositories.cosmos_user_repository.read_item", new_callable=AsyncMock) as mock_read:
            mock_read.side_effect = ServiceRequestError("connection refused")

            with pytest.raises(BackendUnavailable):
                await CosmosUserRepository().get_by_id("uid-123")


@pytest.mark.unit
class TestUserDocument:
    """Official id rule on user documents."""

    def test_student_official_id_cleared(self) -> None:
        user = UserDocument(id="u", role="student", official_id="S-1")
        assert user.official_id is None
        assert not user.is_staff

    def test_staff_requires_official_id(self) -> None:
        with pytest.raises(ValueError):
            UserDocument(id="u", role="admin")
