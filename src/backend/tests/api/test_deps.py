"""
Tests for API dependencies (deps.py).

Token validation and principal reconstruction.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from api.deps import principal_from_claims, principal_from_token, validate_token
from core.exceptions import NotAuthenticated
from core.security import create_access_token, decode_token
from schemas.user import Principal, SessionMode
from services.session import get_session_registry


@pytest.mark.unit
class TestValidateToken:
    """Decoding and revocation."""

    def test_valid_token(self) -> None:
        token = create_access_token({"sub": "uid-1", "role": "student", "mode": "remote"})

        assert validate_token(token)["sub"] == "uid-1"

    def test_expired_token(self) -> None:
        token = create_access_token({"sub": "uid-1"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(NotAuthenticated):
            validate_token(token)

    def test_token_without_subject(self) -> None:
        with pytest.raises(NotAuthenticated):
            validate_token(create_access_token({"role": "student"}))

    def test_revoked_token(self) -> None:
        token = create_access_token({"sub": "uid-1"})
        get_session_registry().revoke(decode_token(token)["jti"])

        with pytest.raises(NotAuthenticated, match="revoked"):
            validate_token(token)


@pytest.mark.unit
class TestPrincipalFromClaims:
    """Demo principals from claims, remote principals from the user store."""

    @pytest.mark.asyncio
    async def test_demo_round_trip(self, demo_student) -> None:
        token = create_access_token(demo_student.to_claims())

        principal = await principal_from_token(token)

        assert principal.model_dump() == demo_student.model_dump()
        assert principal.mode == SessionMode.DEMO.value

    @pytest.mark.asyncio
    async def test_demo_claims_with_bad_role(self) -> None:
        with pytest.raises(NotAuthenticated):
            await principal_from_claims({"sub": "d-1", "mode": "demo", "role": "superuser"})

    @pytest.mark.asyncio
    async def test_remote_principal_is_reloaded(self, admin) -> None:
        with patch("api.deps.get_auth_service") as mock_service:
            mock_service.return_value.resolver.principal_for_uid = AsyncMock(return_value=admin)

            principal = await principal_from_claims({"sub": "admin-1", "role": "student", "mode": "remote"})

        # The stored role wins over the role in the token
        assert principal.role == "admin"
        mock_service.return_value.resolver.principal_for_uid.assert_awaited_once_with("admin-1")

    def test_remote_claims_carry_no_profile(self, student) -> None:
        claims = student.to_claims()

        assert claims == {"sub": "student-a", "role": "student", "mode": "remote"}

    def test_principal_staff_flag(self, admin, student) -> None:
        assert admin.is_staff
        assert not student.is_staff
        assert isinstance(admin, Principal)
