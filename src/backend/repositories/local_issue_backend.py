"""
Local cache issue backend for demo sessions.

The whole issue list is serialized into a single cache slot and rewritten on
every mutation. No method awaits between reading and writing the slot, so
operations on the event loop are serialized without locking.
"""

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from db.local_cache import LocalCache
from models.cosmos_documents import IssueDocument, utcnow
from services.issue_feed import IssueFeed

logger = logging.getLogger(__name__)

_ISSUES = TypeAdapter(list[IssueDocument])


class LocalIssueBackend:
    """Issue storage in one local cache slot."""

    name = "local"
    missing_is_error = False

    def __init__(self, cache: LocalCache, slot: str):
        self.cache = cache
        self.slot = slot
        self.feed = IssueFeed(f"local:{slot}")

    def _load(self) -> list[IssueDocument]:
        payload = self.cache.read(self.slot)
        if not payload:
            return []
        try:
            return _ISSUES.validate_json(payload)
        except ValidationError as e:
            logger.error(f"Local cache slot {self.slot} is unreadable, starting empty: {e}")
            return []

    def _save(self, issues: list[IssueDocument]) -> None:
        self.cache.write(self.slot, _ISSUES.dump_json(issues).decode("utf-8"))

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def list_issues(self) -> list[IssueDocument]:
        return sorted(self._load(), key=lambda i: i.created_at, reverse=True)

    async def list_issues_by_author(self, author_id: str) -> list[IssueDocument]:
        return [i for i in await self.list_issues() if i.author_id == author_id]

    async def get_issue(self, issue_id: str) -> IssueDocument | None:
        for issue in self._load():
            if issue.id == issue_id:
                return issue
        return None

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def insert_issue(self, issue: IssueDocument) -> IssueDocument:
        self._save([issue, *self._load()])
        return issue

    async def update_fields(self, issue_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into the issue; an unknown id is a no-op."""
        issues = self._load()
        updated = [
            IssueDocument.model_validate({**issue.model_dump(), **fields}) if issue.id == issue_id else issue
            for issue in issues
        ]
        self._save(updated)

    async def delete_issue(self, issue_id: str) -> None:
        self._save([issue for issue in self._load() if issue.id != issue_id])

    async def toggle_vote(self, issue_id: str, uid: str) -> bool | None:
        """Flip uid's vote; returns None when the issue does not exist."""
        issues = self._load()
        result: bool | None = None
        for index, issue in enumerate(issues):
            if issue.id != issue_id:
                continue
            if issue.has_voted(uid):
                votes = [v for v in issue.votes if v != uid]
                result = False
            else:
                votes = [*issue.votes, uid]
                result = True
            issues[index] = issue.model_copy(update={"votes": votes, "updated_at": utcnow()})
            break

        if result is not None:
            self._save(issues)
        return result
