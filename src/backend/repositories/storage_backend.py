"""
Storage backend capability used by the issue repository.

Two implementations exist: `CosmosIssueBackend` (durable, shared by every
remote session) and `LocalIssueBackend` (a local cache slot owned by a demo
session). A session picks one when it opens and never mixes them.
"""

from typing import Any, Protocol, runtime_checkable

from models.cosmos_documents import IssueDocument
from services.issue_feed import IssueFeed


@runtime_checkable
class StorageBackend(Protocol):
    """Operations every issue backend provides."""

    name: str
    feed: IssueFeed
    # Durable backends report unknown ids; local ones treat them as no-ops
    missing_is_error: bool

    async def list_issues(self) -> list[IssueDocument]: ...
    async def list_issues_by_author(self, author_id: str) -> list[IssueDocument]: ...
    async def get_issue(self, issue_id: str) -> IssueDocument | None: ...
    async def insert_issue(self, issue: IssueDocument) -> IssueDocument: ...
    async def update_fields(self, issue_id: str, fields: dict[str, Any]) -> None: ...
    async def delete_issue(self, issue_id: str) -> None: ...
    async def toggle_vote(self, issue_id: str, uid: str) -> bool | None: ...
