"""
Authentication-related Pydantic schemas.

Credentials are verified by the identity provider; these schemas only carry
them through to it.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from schemas.user import RoleAssignment, UserResponse


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    home: str
    user: Optional[UserResponse] = None


class FederatedSignInRequest(RoleAssignment):
    """Sign in with an identity token from a federated provider (e.g. Google)."""

    id_token: str


class PasswordSignInRequest(BaseModel):
    """Email/password sign in."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordSignUpRequest(RoleAssignment):
    """Email/password account creation with a role choice."""

    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: str = Field(..., min_length=1, max_length=100)


class DemoSignInRequest(RoleAssignment):
    """Start a demo session whose issues never leave this server."""
