"""
User-related Pydantic schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from models.cosmos_documents import STAFF_ROLES, UserDocument, UserRole


class SessionMode(str, Enum):
    """Which storage backend a session is bound to."""

    REMOTE = "remote"
    DEMO = "demo"


class Principal(BaseModel):
    """An authenticated caller with its resolved application role."""

    uid: str
    email: str = ""
    display_name: str = ""
    role: UserRole
    official_id: Optional[str] = None
    mode: SessionMode = SessionMode.REMOTE

    model_config = {"use_enum_values": True, "validate_default": True}

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_demo(self) -> bool:
        return self.mode == SessionMode.DEMO

    @classmethod
    def from_user(cls, user: UserDocument, mode: SessionMode = SessionMode.REMOTE) -> "Principal":
        return cls(
            uid=user.id,
            email=user.email,
            display_name=user.display_name,
            role=user.role,
            official_id=user.official_id,
            mode=mode,
        )

    def to_claims(self) -> dict:
        """Claims embedded in the session token."""
        claims = {"sub": self.uid, "role": self.role, "mode": self.mode}
        if self.is_demo:
            # Demo principals are never persisted, so the token carries the profile
            claims.update(
                {
                    "email": self.email,
                    "name": self.display_name,
                    "official_id": self.official_id,
                }
            )
        return claims


class IdentityProfile(BaseModel):
    """What the identity provider knows about a signed-in account."""

    uid: str
    email: str = ""
    display_name: str = ""
    photo_url: Optional[str] = None


class RoleAssignment(BaseModel):
    """Role choice made at sign-in or through explicit re-assignment."""

    role: UserRole
    official_id: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def check_official_id(self) -> "RoleAssignment":
        if self.role in (UserRole.ADMIN, UserRole.MANAGEMENT):
            if not self.official_id or not self.official_id.strip():
                raise ValueError("official_id is required for admin and management roles")
        return self


class UserResponse(BaseModel):
    """Schema for user responses."""

    uid: str
    email: str
    display_name: str
    role: str
    official_id: Optional[str] = None
    mode: str = SessionMode.REMOTE.value
    created_at: Optional[datetime] = None

    @classmethod
    def from_principal(cls, principal: Principal, created_at: datetime | None = None) -> "UserResponse":
        return cls(
            uid=principal.uid,
            email=principal.email,
            display_name=principal.display_name,
            role=principal.role,
            official_id=principal.official_id,
            mode=principal.mode,
            created_at=created_at,
        )
