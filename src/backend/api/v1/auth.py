"""
Authentication endpoints.

Credentials are checked by the identity provider. On success this API issues
its own session token; the token's `mode` claim fixes which storage backend
the session uses for its whole lifetime.
"""

from datetime import datetime, timezone
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, status

from api.deps import CurrentPrincipal, get_token_payload
from core.security import create_access_token
from schemas.auth import (
    DemoSignInRequest,
    FederatedSignInRequest,
    PasswordSignInRequest,
    PasswordSignUpRequest,
    TokenResponse,
)
from schemas.user import Principal, RoleAssignment, UserResponse
from services.access_gate import role_home
from services.identity_service import AuthService, get_auth_service
from services.session import get_session_registry

logger = structlog.get_logger(__name__)

router = APIRouter()


def issue_session_token(principal: Principal) -> TokenResponse:
    """Session token plus the landing route for the principal's role."""
    return TokenResponse(
        access_token=create_access_token(principal.to_claims()),
        token_type="bearer",
        home=role_home(principal.role),
        user=UserResponse.from_principal(principal),
    )


@router.post("/federated", response_model=TokenResponse)
async def sign_in_federated(
    request: FederatedSignInRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """
    Sign in with a Google ID token.

    First sign-in of an account records the chosen role; returning users keep
    the role they already have.
    """
    principal = await auth.sign_in_federated(
        request.id_token,
        RoleAssignment(role=request.role, official_id=request.official_id),
    )
    logger.info("user_signed_in", uid=principal.uid, method="federated")
    return issue_session_token(principal)


@router.post("/login", response_model=TokenResponse)
async def sign_in_password(
    request: PasswordSignInRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """
    Sign in with email and password.

    Answers 409 when the account exists at the identity provider but has no
    application role yet.
    """
    principal = await auth.sign_in_password(request.email, request.password)
    logger.info("user_signed_in", uid=principal.uid, method="password")
    return issue_session_token(principal)


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def sign_up_password(
    request: PasswordSignUpRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """Create an email/password account with a role."""
    principal = await auth.sign_up_password(
        request.email,
        request.password,
        request.display_name,
        RoleAssignment(role=request.role, official_id=request.official_id),
    )
    logger.info("user_signed_up", uid=principal.uid, role=principal.role)
    return issue_session_token(principal)


@router.post("/demo", response_model=TokenResponse)
async def sign_in_demo(
    request: DemoSignInRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> TokenResponse:
    """
    Start a demo session.

    Demo issues live in a server-local cache slot of their own and are never
    written to the durable store.
    """
    principal = auth.sign_in_demo(RoleAssignment(role=request.role, official_id=request.official_id))
    return issue_session_token(principal)


@router.post("/logout")
async def logout(
    principal: CurrentPrincipal,
    payload: Annotated[dict[str, Any] | None, Depends(get_token_payload)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> dict[str, str]:
    """
    Sign out.

    Revokes the session token and tears down the principal's open sessions,
    which closes any live feed sockets.
    """
    if payload and payload.get("jti"):
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc) if payload.get("exp") else None
        get_session_registry().revoke(payload["jti"], expires_at)

    auth.sign_out(principal)
    return {"message": "Successfully logged out"}
