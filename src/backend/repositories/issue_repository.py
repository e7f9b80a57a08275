"""
Issue repository.

Single entry point for reading and mutating issues. Works against whichever
`StorageBackend` the session was opened with and republishes a full snapshot
on the backend's feed after every successful mutation.
"""

import logging
from typing import Any, Optional

from core.config import settings
from core.exceptions import Forbidden, NotAuthenticated, NotFound
from models.cosmos_documents import IssueDocument, IssueStatus, utcnow
from repositories.storage_backend import StorageBackend
from schemas.issue import IssueCreate
from schemas.user import Principal
from services.issue_feed import IssueFeed, SnapshotCallback, Subscription

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = frozenset({"id", "created_at", "author_id", "author_name", "author_email", "votes"})
REQUIRED_FIELDS = frozenset({"title", "description", "category_id", "status"})


class IssueRepository:
    """
    Issue CRUD, vote toggling and admin triage.

    Ownership checks run only when an actor is passed and
    `enforce_ownership` is on: authors alone may edit or delete their
    issues, and only admin/management may change status or annotate.
    """

    def __init__(self, backend: StorageBackend, enforce_ownership: bool | None = None):
        self.backend = backend
        self.enforce_ownership = (
            settings.ENFORCE_ISSUE_OWNERSHIP if enforce_ownership is None else enforce_ownership
        )

    @property
    def feed(self) -> IssueFeed:
        return self.backend.feed

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def list_issues(self) -> list[IssueDocument]:
        """All issues, newest first."""
        return await self.backend.list_issues()

    async def list_issues_by_author(self, author_id: str) -> list[IssueDocument]:
        return await self.backend.list_issues_by_author(author_id)

    async def get_issue(self, issue_id: str) -> Optional[IssueDocument]:
        return await self.backend.get_issue(issue_id)

    # ========================================================================
    # Live snapshots
    # ========================================================================

    async def subscribe(self, on_snapshot: SnapshotCallback) -> Subscription:
        """
        Register for full snapshots and receive the current one right away.

        If the initial load fails the subscriber gets an empty list and keeps
        its registration; later refreshes will fill it in.
        """
        subscription = self.feed.subscribe(on_snapshot)
        try:
            snapshot = await self.backend.list_issues()
        except Exception as e:
            logger.error(f"Initial snapshot from {self.backend.name} failed: {e}")
            snapshot = []
        await self.feed.deliver(subscription, snapshot)
        return subscription

    async def refresh(self) -> list[IssueDocument] | None:
        """Re-read the backend and publish; on failure subscribers keep the stale view."""
        try:
            snapshot = await self.backend.list_issues()
        except Exception as e:
            logger.error(f"Snapshot refresh from {self.backend.name} failed: {e}")
            return None
        await self.feed.publish(snapshot)
        return snapshot

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create_issue(self, data: IssueCreate, actor: Optional[Principal]) -> IssueDocument:
        """Persist a new pending issue authored by actor."""
        if actor is None:
            raise NotAuthenticated("Must be logged in to create an issue")

        now = utcnow()
        issue = IssueDocument(
            title=data.title,
            description=data.description,
            category_id=data.category_id,
            image_url=data.image_url,
            author_id=actor.uid,
            author_name=actor.display_name,
            author_email=actor.email,
            status=IssueStatus.PENDING,
            votes=[],
            created_at=now,
            updated_at=now,
        )
        await self.backend.insert_issue(issue)
        logger.info(f"Issue {issue.id} created by {actor.uid} in {issue.category_id}")
        await self.refresh()
        return issue

    async def update_issue(
        self,
        issue_id: str,
        fields: dict[str, Any],
        actor: Optional[Principal] = None,
    ) -> None:
        """Merge fields into an existing issue and bump updated_at."""
        blocked = IMMUTABLE_FIELDS.intersection(fields)
        if blocked:
            raise ValueError(f"Cannot update immutable fields: {', '.join(sorted(blocked))}")
        cleared = sorted(name for name in REQUIRED_FIELDS.intersection(fields) if fields[name] is None)
        if cleared:
            raise ValueError(f"Cannot clear required fields: {', '.join(cleared)}")

        if not await self._authorize_author(issue_id, actor):
            return
        await self._apply(issue_id, {**fields, "updated_at": utcnow()})

    async def delete_issue(self, issue_id: str, actor: Optional[Principal] = None) -> None:
        """Remove an issue permanently; unknown ids are ignored."""
        if self._enforcing(actor):
            issue = await self.backend.get_issue(issue_id)
            if issue is None:
                return
            self._check_author(issue, actor)

        await self.backend.delete_issue(issue_id)
        logger.info(f"Issue {issue_id} deleted")
        await self.refresh()

    async def toggle_vote(self, issue_id: str, actor: Optional[Principal]) -> Optional[bool]:
        """
        Vote for an issue, or withdraw the vote if actor already voted.

        Returns the actor's new membership, or None if a local backend had no
        such issue.
        """
        if actor is None:
            raise NotAuthenticated("Must be logged in to vote")

        voted = await self.backend.toggle_vote(issue_id, actor.uid)
        if voted is None:
            return None
        logger.info(f"Issue {issue_id} vote {'added' if voted else 'removed'} by {actor.uid}")
        await self.refresh()
        return voted

    async def update_status(
        self,
        issue_id: str,
        status: IssueStatus,
        actor: Optional[Principal] = None,
    ) -> None:
        """Set triage status."""
        self._check_staff(actor)
        await self._apply(issue_id, {"status": IssueStatus(status).value, "updated_at": utcnow()})

    async def add_admin_note(self, issue_id: str, note: str, actor: Optional[Principal]) -> None:
        """Attach the official note, replacing any earlier one."""
        if actor is None:
            raise NotAuthenticated("Must be logged in to add notes")
        self._check_staff(actor)

        now = utcnow()
        await self._apply(
            issue_id,
            {
                "admin_notes": note,
                "admin_updated_by": actor.display_name,
                "admin_updated_at": now,
                "updated_at": now,
            },
        )

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _apply(self, issue_id: str, fields: dict[str, Any]) -> None:
        await self.backend.update_fields(issue_id, fields)
        await self.refresh()

    def _enforcing(self, actor: Optional[Principal]) -> bool:
        return self.enforce_ownership and actor is not None

    async def _authorize_author(self, issue_id: str, actor: Optional[Principal]) -> bool:
        """False means the issue is missing on a backend that ignores missing ids."""
        if not self._enforcing(actor):
            return True
        issue = await self.backend.get_issue(issue_id)
        if issue is None:
            if self.backend.missing_is_error:
                raise NotFound()
            return False
        self._check_author(issue, actor)
        return True

    def _check_author(self, issue: IssueDocument, actor: Optional[Principal]) -> None:
        if actor is not None and issue.author_id != actor.uid:
            logger.warning(f"User {actor.uid} tried to modify issue {issue.id} owned by {issue.author_id}")
            raise Forbidden("Only the author can modify this issue")

    def _check_staff(self, actor: Optional[Principal]) -> None:
        if self._enforcing(actor) and not actor.is_staff:
            logger.warning(f"User {actor.uid} with role {actor.role} attempted an admin action")
            raise Forbidden("Admin or management role required")
