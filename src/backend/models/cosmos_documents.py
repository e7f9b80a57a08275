"""
Cosmos DB document models for IssueBoard.

These Pydantic models define the document structure stored in Cosmos DB and,
for demo sessions, in the local cache slot.

Container Strategy:
- users: Application user records keyed by identity-provider uid (partition: /id)
- issues: Issues with embedded vote sets and admin annotation (partition: /id)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 2000


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class UserRole(str, Enum):
    """Application roles."""

    STUDENT = "student"
    ADMIN = "admin"
    MANAGEMENT = "management"


class IssueStatus(str, Enum):
    """Issue triage status."""

    PENDING = "pending"
    SOLVED = "solved"


class IssueCategory(str, Enum):
    """Fixed set of issue categories."""

    BUG_REPORT = "bug-report"
    FEATURE_REQUEST = "feature-request"
    INFRASTRUCTURE = "infrastructure"
    ACADEMIC = "academic"
    FACILITY = "facility"
    OTHER = "other"


CATEGORY_LABELS: dict[str, str] = {
    IssueCategory.BUG_REPORT.value: "Bug Report",
    IssueCategory.FEATURE_REQUEST.value: "Feature Request",
    IssueCategory.INFRASTRUCTURE.value: "Infrastructure",
    IssueCategory.ACADEMIC.value: "Academic",
    IssueCategory.FACILITY.value: "Facility",
    IssueCategory.OTHER.value: "Other",
}

STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGEMENT.value})


# ============================================================================
# Base Document Model
# ============================================================================


class CosmosDocument(BaseModel):
    """
    Base class for Cosmos DB documents.

    All documents have:
    - id: Unique identifier (also used as partition key)
    - _ts / _etag: managed by Cosmos DB, kept as extra fields
    """

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid4()))


# ============================================================================
# User Documents
# ============================================================================


class UserDocument(CosmosDocument):
    """
    User document stored in the 'users' container.

    Partition key: /id (the identity provider uid)
    """

    email: str = ""
    display_name: str = ""
    photo_url: Optional[str] = None
    role: UserRole
    official_id: Optional[str] = None  # Required for admin/management

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_official_id(self) -> "UserDocument":
        """Staff accounts must carry an official id; students never do."""
        if self.role in STAFF_ROLES:
            if not self.official_id or not self.official_id.strip():
                raise ValueError("official_id is required for admin and management roles")
            self.official_id = self.official_id.strip()
        else:
            self.official_id = None
        return self

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


# ============================================================================
# Issue Documents
# ============================================================================


class IssueDocument(CosmosDocument):
    """
    Issue document stored in the 'issues' container.

    Partition key: /id
    The votes list has set semantics: each uid appears at most once.
    """

    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., max_length=DESCRIPTION_MAX_LENGTH)
    category_id: IssueCategory

    # Author snapshot taken at creation time
    author_id: str
    author_name: str = ""
    author_email: str = ""

    status: IssueStatus = IssueStatus.PENDING
    votes: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None

    # Admin annotation (single note per issue)
    admin_notes: Optional[str] = None
    admin_updated_by: Optional[str] = None
    admin_updated_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def vote_count(self) -> int:
        return len(self.votes)

    def has_voted(self, uid: str) -> bool:
        return uid in self.votes
