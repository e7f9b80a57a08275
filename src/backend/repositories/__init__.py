"""Repository modules for document storage access."""

from repositories.cosmos_issue_backend import CosmosIssueBackend
from repositories.cosmos_user_repository import CosmosUserRepository
from repositories.issue_repository import IssueRepository
from repositories.local_issue_backend import LocalIssueBackend
from repositories.storage_backend import StorageBackend

__all__ = [
    "CosmosIssueBackend",
    "CosmosUserRepository",
    "IssueRepository",
    "LocalIssueBackend",
    "StorageBackend",
]
