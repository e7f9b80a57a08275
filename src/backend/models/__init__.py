"""Document models module."""

from models.cosmos_documents import (
    CATEGORY_LABELS,
    IssueCategory,
    IssueDocument,
    IssueStatus,
    UserDocument,
    UserRole,
)

__all__ = [
    "CATEGORY_LABELS",
    "IssueCategory",
    "IssueDocument",
    "IssueStatus",
    "UserDocument",
    "UserRole",
]
