"""Schemas module initialization."""

from schemas.auth import TokenResponse
from schemas.issue import IssueCreate, IssueResponse, IssueStats, IssueUpdate, UserActivityStats
from schemas.user import Principal, RoleAssignment, SessionMode, UserResponse

__all__ = [
    "IssueCreate",
    "IssueResponse",
    "IssueStats",
    "IssueUpdate",
    "Principal",
    "RoleAssignment",
    "SessionMode",
    "TokenResponse",
    "UserActivityStats",
    "UserResponse",
]
