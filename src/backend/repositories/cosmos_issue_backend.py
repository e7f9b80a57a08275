"""
Cosmos DB issue backend.

Issues live in the 'issues' container (partition key /id). Votes are an
embedded array mutated with conditional patch operations so that concurrent
toggles from different users never overwrite each other.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from azure.core.exceptions import AzureError
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from pydantic import ValidationError

from core.config import settings
from core.exceptions import BackendUnavailable, NotFound
from db.cosmos_session import (
    ISSUES_CONTAINER,
    create_item,
    delete_item,
    patch_item,
    query_items,
    read_item,
)
from models.cosmos_documents import IssueDocument, utcnow
from services.issue_feed import IssueFeed

logger = logging.getLogger(__name__)

PRECONDITION_FAILED = 412


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """Map Cosmos SDK failures onto the domain error taxonomy."""
    try:
        yield
    except CosmosResourceNotFoundError as e:
        raise NotFound() from e
    except AzureError as e:
        logger.error(f"Cosmos DB {operation} failed: {e}")
        raise BackendUnavailable() from e


def _documents(results: list[dict[str, Any]]) -> list[IssueDocument]:
    """Parse query results, skipping documents that no longer validate."""
    issues = []
    for data in results:
        try:
            issues.append(IssueDocument(**data))
        except ValidationError as e:
            logger.error(f"Skipping unreadable issue {data.get('id')}: {e}")
    return issues


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class CosmosIssueBackend:
    """Durable issue storage shared by every remote session."""

    name = "cosmos"
    missing_is_error = True

    def __init__(self, max_vote_retries: int | None = None):
        self.feed = IssueFeed("cosmos:issues")
        if max_vote_retries is None:
            max_vote_retries = settings.VOTE_PATCH_MAX_RETRIES
        if max_vote_retries < 1:
            raise ValueError("max_vote_retries must be at least 1")
        self.max_vote_retries = max_vote_retries

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def list_issues(self) -> list[IssueDocument]:
        """All issues, newest first."""
        query = "SELECT * FROM c ORDER BY c.created_at DESC"
        with translate_store_errors("list_issues"):
            results = await query_items(ISSUES_CONTAINER, query)
        return _documents(results)

    async def list_issues_by_author(self, author_id: str) -> list[IssueDocument]:
        """Issues created by one user, newest first."""
        query = """
            SELECT * FROM c
            WHERE c.author_id = @author_id
            ORDER BY c.created_at DESC
        """
        with translate_store_errors("list_issues_by_author"):
            results = await query_items(
                ISSUES_CONTAINER,
                query,
                parameters=[{"name": "@author_id", "value": author_id}],
            )
        return _documents(results)

    async def get_issue(self, issue_id: str) -> IssueDocument | None:
        """Point read by id."""
        with translate_store_errors("get_issue"):
            data = await read_item(ISSUES_CONTAINER, issue_id, partition_key=issue_id)
        if data is None:
            return None
        return IssueDocument(**data)

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def insert_issue(self, issue: IssueDocument) -> IssueDocument:
        with translate_store_errors("insert_issue"):
            await create_item(ISSUES_CONTAINER, issue.model_dump(mode="json"))
        logger.debug(f"Created issue {issue.id}")
        return issue

    async def update_fields(self, issue_id: str, fields: dict[str, Any]) -> None:
        """Set the given top-level fields; raises NotFound for an unknown id."""
        operations = [
            {"op": "set", "path": f"/{name}", "value": _json_value(value)} for name, value in fields.items()
        ]
        with translate_store_errors("update_fields"):
            await patch_item(ISSUES_CONTAINER, issue_id, issue_id, operations)

    async def delete_issue(self, issue_id: str) -> None:
        """Delete an issue; an unknown id is a no-op."""
        try:
            with translate_store_errors("delete_issue"):
                await delete_item(ISSUES_CONTAINER, issue_id, partition_key=issue_id)
        except NotFound:
            logger.debug(f"Delete of missing issue {issue_id} ignored")

    async def toggle_vote(self, issue_id: str, uid: str) -> bool:
        """
        Flip uid's membership in the issue's vote set.

        The add is guarded by NOT ARRAY_CONTAINS and the remove by the exact
        index of uid, so a concurrent change to the array makes Cosmos reject
        the patch with 412 and we re-read and try again.

        Returns:
            True if uid is now a voter, False if the vote was withdrawn
        """
        literal = json.dumps(uid)

        for attempt in range(1, self.max_vote_retries + 1):
            issue = await self.get_issue(issue_id)
            if issue is None:
                raise NotFound()

            now = utcnow().isoformat()
            if issue.has_voted(uid):
                index = issue.votes.index(uid)
                operations = [
                    {"op": "remove", "path": f"/votes/{index}"},
                    {"op": "set", "path": "/updated_at", "value": now},
                ]
                predicate = f"FROM c WHERE c.votes[{index}] = {literal}"
                voted = False
            else:
                operations = [
                    {"op": "add", "path": "/votes/-", "value": uid},
                    {"op": "set", "path": "/updated_at", "value": now},
                ]
                predicate = f"FROM c WHERE NOT ARRAY_CONTAINS(c.votes, {literal})"
                voted = True

            try:
                await patch_item(ISSUES_CONTAINER, issue_id, issue_id, operations, filter_predicate=predicate)
                return voted
            except CosmosResourceNotFoundError as e:
                raise NotFound() from e
            except CosmosHttpResponseError as e:
                if e.status_code != PRECONDITION_FAILED:
                    logger.error(f"Vote patch on issue {issue_id} failed: {e}")
                    raise BackendUnavailable() from e
                logger.info(f"Vote set of issue {issue_id} changed concurrently (attempt {attempt}), retrying")
            except AzureError as e:
                logger.error(f"Vote patch on issue {issue_id} failed: {e}")
                raise BackendUnavailable() from e

        raise BackendUnavailable("Vote could not be recorded, please try again")
