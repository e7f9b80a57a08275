"""
User profile endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from api.deps import CurrentPrincipal, Repository
from api.v1.auth import issue_session_token
from schemas.auth import TokenResponse
from schemas.issue import UserActivityStats
from schemas.user import RoleAssignment, UserResponse
from services.identity_service import AuthService, get_auth_service
from services.issue_projection import user_activity_stats

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(principal: CurrentPrincipal) -> UserResponse:
    """Get the current user's profile."""
    return UserResponse.from_principal(principal)


@router.put("/me/role", response_model=TokenResponse)
async def assign_role(
    assignment: RoleAssignment,
    principal: CurrentPrincipal,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """
    Change the current user's role.

    A new session token is returned because demo principals carry their role
    in the token itself.
    """
    updated = await auth.resolver.assign_role(principal, assignment)
    return issue_session_token(updated)


@router.get("/me/stats", response_model=UserActivityStats)
async def get_my_stats(principal: CurrentPrincipal, repository: Repository) -> UserActivityStats:
    """Issues posted, votes received and issues voted on."""
    issues = await repository.list_issues()
    return user_activity_stats(issues, principal.uid)
