"""
Cosmos DB User repository.

Application user records are keyed by the identity-provider uid, so every
lookup is a direct point read.
"""

import logging
from typing import Optional

from azure.core.exceptions import AzureError

from core.exceptions import BackendUnavailable
from db.cosmos_session import USERS_CONTAINER, read_item, upsert_item
from models.cosmos_documents import UserDocument, utcnow

logger = logging.getLogger(__name__)


class CosmosUserRepository:
    """Repository for user operations using Cosmos DB."""

    async def get_by_id(self, user_id: str) -> Optional[UserDocument]:
        """Get a user by uid (direct point read)."""
        try:
            data = await read_item(USERS_CONTAINER, user_id, partition_key=user_id)
        except AzureError as e:
            logger.error(f"Failed to read user {user_id}: {e}")
            raise BackendUnavailable() from e
        if data is None:
            return None
        return UserDocument(**data)

    async def save(self, user: UserDocument) -> UserDocument:
        """Create or replace a user document."""
        user.updated_at = utcnow()
        try:
            await upsert_item(USERS_CONTAINER, user.model_dump(mode="json"))
        except AzureError as e:
            logger.error(f"Failed to save user {user.id}: {e}")
            raise BackendUnavailable() from e
        logger.info(f"Saved user {user.id} with role {user.role}")
        return user
