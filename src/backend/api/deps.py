"""
Shared dependencies for API endpoints.

Includes:
- Session-token authentication (remote and demo principals)
- Per-request sessions bound to the principal's storage backend
- Role requirements backed by the access gate's rules
"""

from typing import Annotated, Any, AsyncIterator, Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from core.config import settings
from core.exceptions import NotAuthenticated
from core.security import decode_token
from models.cosmos_documents import UserRole
from repositories.issue_repository import IssueRepository
from schemas.user import Principal, SessionMode
from services.access_gate import AuthState, GateAction, check_roles
from services.identity_service import get_auth_service
from services.session import Session, get_session_registry

logger = structlog.get_logger(__name__)

# Missing credentials are reported as 401 by the dependencies below
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# =============================================================================
# Token handling
# =============================================================================


def validate_token(token: str) -> dict[str, Any]:
    """
    Decode a session token and reject revoked ones.

    Raises:
        NotAuthenticated: If the token is invalid, expired or revoked.
    """
    payload = decode_token(token)
    if payload is None or not payload.get("sub"):
        raise NotAuthenticated("Invalid or expired token")

    if get_session_registry().is_revoked(payload.get("jti")):
        logger.warning("revoked_token_used", jti=str(payload.get("jti"))[:8])
        raise NotAuthenticated("Token has been revoked")

    return payload


async def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """
    Rebuild the principal a token was issued for.

    Demo principals come straight from the claims; remote principals are
    reloaded so role changes take effect without a new token.
    """
    if payload.get("mode") == SessionMode.DEMO.value:
        if not settings.DEMO_MODE_ENABLED:
            raise NotAuthenticated("Demo mode is disabled")
        try:
            return Principal(
                uid=payload["sub"],
                email=payload.get("email") or "",
                display_name=payload.get("name") or "",
                role=payload.get("role"),
                official_id=payload.get("official_id"),
                mode=SessionMode.DEMO,
            )
        except ValidationError as e:
            raise NotAuthenticated("Invalid token payload") from e

    return await get_auth_service().resolver.principal_for_uid(payload["sub"])


async def principal_from_token(token: str) -> Principal:
    """Principal for a raw token (WebSocket query parameter)."""
    return await principal_from_claims(validate_token(token))


# =============================================================================
# Principal dependencies
# =============================================================================


async def get_token_payload(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> dict[str, Any] | None:
    """Claims of the bearer token, or None when no token was sent."""
    if credentials is None:
        return None
    try:
        return validate_token(credentials.credentials)
    except NotAuthenticated as e:
        raise _unauthorized(e.detail) from e


async def get_current_principal_optional(
    payload: Annotated[dict[str, Any] | None, Depends(get_token_payload)],
) -> Principal | None:
    """
    The signed-in principal, or None for anonymous callers.

    A token that was sent but is no longer valid is still rejected.
    """
    if payload is None:
        return None
    try:
        return await principal_from_claims(payload)
    except NotAuthenticated as e:
        raise _unauthorized(e.detail) from e


async def get_current_principal(
    principal: Annotated[Principal | None, Depends(get_current_principal_optional)],
) -> Principal:
    """
    Require a signed-in principal.

    Raises:
        HTTPException: 401 if no valid session token was sent.
    """
    if principal is None:
        raise _unauthorized("Not authenticated")
    return principal


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Uses the same decision as route navigation: unauthenticated callers get
    401, callers whose role is not allowed get 403.
    """
    allowed = frozenset(UserRole(role).value for role in roles)

    async def dependency(
        principal: Annotated[Principal | None, Depends(get_current_principal_optional)],
    ) -> Principal:
        state = AuthState.AUTHENTICATED if principal else AuthState.UNAUTHENTICATED
        decision = check_roles(allowed, state, principal.role if principal else None)
        if decision.action == GateAction.ALLOW:
            return principal
        if principal is None:
            raise _unauthorized("Not authenticated")
        logger.warning("role_access_denied", uid=principal.uid, role=principal.role, allowed=sorted(allowed))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires role: {', '.join(sorted(allowed))}",
        )

    return dependency


require_student = require_roles(UserRole.STUDENT)
require_staff = require_roles(UserRole.ADMIN, UserRole.MANAGEMENT)


# =============================================================================
# Sessions
# =============================================================================


async def get_session(
    principal: Annotated[Principal, Depends(get_current_principal)],
    payload: Annotated[Optional[dict[str, Any]], Depends(get_token_payload)],
) -> AsyncIterator[Session]:
    """Session for the request; torn down once the response is sent."""
    async with Session.open(principal, token_id=payload.get("jti") if payload else None) as session:
        yield session


async def get_issue_repository(
    session: Annotated[Session, Depends(get_session)],
) -> IssueRepository:
    return session.repository


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipal = Annotated[Optional[Principal], Depends(get_current_principal_optional)]
StudentPrincipal = Annotated[Principal, Depends(require_student)]
StaffPrincipal = Annotated[Principal, Depends(require_staff)]
CurrentSession = Annotated[Session, Depends(get_session)]
Repository = Annotated[IssueRepository, Depends(get_issue_repository)]
