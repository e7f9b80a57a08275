"""
Issue-related Pydantic schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from models.cosmos_documents import (
    CATEGORY_LABELS,
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    IssueCategory,
    IssueDocument,
    IssueStatus,
)

ALL = "all"


class IssueSort(str, Enum):
    """Sort orders offered by issue views."""

    RECENT = "recent"
    VOTES = "votes"


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class IssueCreate(BaseModel):
    """Schema for submitting a new issue."""

    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., max_length=DESCRIPTION_MAX_LENGTH)
    category_id: IssueCategory
    image_url: Optional[str] = None

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip_required(v)


class IssueUpdate(BaseModel):
    """Partial update of the author-editable fields."""

    title: Optional[str] = Field(None, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    category_id: Optional[IssueCategory] = None
    image_url: Optional[str] = None

    @field_validator("title", "description", "category_id", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # Omit a field to keep it; only image_url may be cleared with null
        if v is None:
            raise ValueError("must not be null")
        return v

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip_required(v)

    def to_fields(self) -> dict:
        """Only the fields the client actually sent."""
        return self.model_dump(mode="json", exclude_unset=True)


class StatusUpdate(BaseModel):
    """Admin status change."""

    status: IssueStatus


class AdminNoteCreate(BaseModel):
    """Admin annotation; replaces any previous note."""

    note: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)


class IssueResponse(BaseModel):
    """Issue as returned to clients."""

    id: str
    title: str
    description: str
    category_id: str
    category_label: str
    author_id: str
    author_name: str
    author_email: str
    status: str
    votes: list[str]
    vote_count: int
    has_voted: bool = False
    image_url: Optional[str] = None
    admin_notes: Optional[str] = None
    admin_updated_by: Optional[str] = None
    admin_updated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, issue: IssueDocument, viewer_uid: str | None = None) -> "IssueResponse":
        return cls(
            id=issue.id,
            title=issue.title,
            description=issue.description,
            category_id=issue.category_id,
            category_label=CATEGORY_LABELS.get(issue.category_id, "Other"),
            author_id=issue.author_id,
            author_name=issue.author_name,
            author_email=issue.author_email,
            status=issue.status,
            votes=list(issue.votes),
            vote_count=issue.vote_count,
            has_voted=bool(viewer_uid) and issue.has_voted(viewer_uid),
            image_url=issue.image_url,
            admin_notes=issue.admin_notes,
            admin_updated_by=issue.admin_updated_by,
            admin_updated_at=issue.admin_updated_at,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
        )


class IssueStats(BaseModel):
    """Aggregate counters shown on the dashboard and admin pages."""

    total: int = 0
    pending: int = 0
    solved: int = 0
    total_votes: int = 0


class UserActivityStats(BaseModel):
    """Per-user counters shown on the settings page."""

    issues_posted: int = 0
    votes_received: int = 0
    voted_on: int = 0


class VoteResponse(BaseModel):
    """Result of a vote toggle."""

    issue_id: str
    has_voted: bool
    vote_count: int
