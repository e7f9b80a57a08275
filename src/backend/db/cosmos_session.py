"""
Azure Cosmos DB access for the issue board.

Two containers, both partitioned on /id:
- users: one document per uid, created on first sign-in with a role
- issues: one document per issue, votes embedded as a list of uids

The client authenticates with DefaultAzureCredential in Azure, or with an
account key from a connection string against the local emulator.
"""

import logging
from typing import Any

from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import CosmosResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential

from core.config import settings

logger = logging.getLogger(__name__)

USERS_CONTAINER = "users"
ISSUES_CONTAINER = "issues"

_cosmos_client: CosmosClient | None = None
_database: DatabaseProxy | None = None
_credential: DefaultAzureCredential | None = None


def _parse_connection_string(connection_string: str) -> tuple[str, str]:
    """Split `AccountEndpoint=...;AccountKey=...;` into (endpoint, key)."""
    parts = dict(segment.split("=", 1) for segment in connection_string.split(";") if "=" in segment)
    endpoint = parts.get("AccountEndpoint", "")
    key = parts.get("AccountKey", "")
    if not endpoint or not key:
        raise ValueError("AZURE_COSMOS_CONNECTION_STRING must contain AccountEndpoint and AccountKey")
    return endpoint, key


async def get_cosmos_client() -> CosmosClient:
    """Return the shared Cosmos client, creating it on first use."""
    global _cosmos_client, _credential

    if _cosmos_client is not None:
        return _cosmos_client

    if settings.AZURE_COSMOS_CONNECTION_STRING:
        endpoint, key = _parse_connection_string(settings.AZURE_COSMOS_CONNECTION_STRING)
        # Emulator uses a self-signed cert
        _cosmos_client = CosmosClient(
            url=endpoint,
            credential=key,
            connection_verify=not settings.AZURE_COSMOS_DISABLE_SSL,
        )
        logger.info(f"Cosmos client ready for {endpoint} (account key)")
    elif settings.AZURE_COSMOS_ENDPOINT:
        _credential = DefaultAzureCredential()
        _cosmos_client = CosmosClient(url=settings.AZURE_COSMOS_ENDPOINT, credential=_credential)
        logger.info(f"Cosmos client ready for {settings.AZURE_COSMOS_ENDPOINT} (managed identity)")
    else:
        raise ValueError("Either AZURE_COSMOS_ENDPOINT or AZURE_COSMOS_CONNECTION_STRING must be set")

    return _cosmos_client


async def get_database() -> DatabaseProxy:
    global _database

    if _database is None:
        client = await get_cosmos_client()
        _database = client.get_database_client(settings.AZURE_COSMOS_DATABASE)
        logger.info(f"Using Cosmos database {settings.AZURE_COSMOS_DATABASE}")

    return _database


async def get_container(container_name: str) -> ContainerProxy:
    database = await get_database()
    return database.get_container_client(container_name)


async def close_cosmos() -> None:
    """Release the client and credential; called on application shutdown."""
    global _cosmos_client, _database, _credential

    if _cosmos_client is not None:
        await _cosmos_client.close()
        logger.info("Cosmos client closed")
    if _credential is not None:
        await _credential.close()

    _cosmos_client = None
    _database = None
    _credential = None


# Item helpers. Azure SDK errors propagate; repositories translate them.


async def create_item(container_name: str, item: dict[str, Any]) -> dict[str, Any]:
    container = await get_container(container_name)
    return await container.create_item(body=item)


async def read_item(container_name: str, item_id: str, partition_key: str) -> dict[str, Any] | None:
    """Point read; None when the document does not exist."""
    container = await get_container(container_name)
    try:
        return await container.read_item(item=item_id, partition_key=partition_key)
    except CosmosResourceNotFoundError:
        return None


async def upsert_item(container_name: str, item: dict[str, Any]) -> dict[str, Any]:
    container = await get_container(container_name)
    return await container.upsert_item(body=item)


async def patch_item(
    container_name: str,
    item_id: str,
    partition_key: str,
    operations: list[dict[str, Any]],
    filter_predicate: str | None = None,
) -> dict[str, Any]:
    """
    Apply patch operations to one document in a single round trip.

    With a filter_predicate ("FROM c WHERE ...") Cosmos only applies the
    patch when the stored document matches, and answers 412 otherwise.
    A missing document raises CosmosResourceNotFoundError.
    """
    container = await get_container(container_name)
    options: dict[str, Any] = {}
    if filter_predicate:
        options["filter_predicate"] = filter_predicate
    return await container.patch_item(
        item=item_id,
        partition_key=partition_key,
        patch_operations=operations,
        **options,
    )


async def delete_item(container_name: str, item_id: str, partition_key: str) -> None:
    container = await get_container(container_name)
    await container.delete_item(item=item_id, partition_key=partition_key)


async def query_items(
    container_name: str,
    query: str,
    parameters: list[dict[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    """
    Run a cross-partition SQL query and collect every result.

    Example:
        await query_items(
            ISSUES_CONTAINER,
            "SELECT * FROM c WHERE c.author_id = @author_id",
            parameters=[{"name": "@author_id", "value": uid}],
        )
    """
    container = await get_container(container_name)
    results = container.query_items(query=query, parameters=parameters or None)
    return [item async for item in results]
