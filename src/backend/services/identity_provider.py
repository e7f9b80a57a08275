"""
Identity provider adapter.

Credentials are verified by Google Identity Toolkit (the Firebase
Authentication REST API). This module only talks to the provider and returns
what it knows about the account; application roles are resolved separately
by `services.identity_service`.

Supported flows:
- Federated sign-in with a Google ID token (accounts:signInWithIdp)
- Email/password sign-in (accounts:signInWithPassword)
- Email/password sign-up (accounts:signUp + accounts:update for the display name)
"""

from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from core.config import settings
from core.exceptions import AccountExists, BackendUnavailable, NotAuthenticated
from schemas.user import IdentityProfile

logger = structlog.get_logger(__name__)

# Provider error codes that mean "bad credentials" rather than an outage
CREDENTIAL_ERRORS = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "INVALID_IDP_RESPONSE",
    "INVALID_ID_TOKEN",
    "USER_DISABLED",
    "WEAK_PASSWORD",
}


class IdentityProvider(ABC):
    """Abstract base class for identity providers."""

    @abstractmethod
    async def verify_federated(self, id_token: str) -> IdentityProfile:
        """Exchange a federated ID token for the provider's account profile."""

    @abstractmethod
    async def sign_in_password(self, email: str, password: str) -> IdentityProfile:
        """Verify email/password credentials."""

    @abstractmethod
    async def sign_up_password(self, email: str, password: str, display_name: str) -> IdentityProfile:
        """Create an email/password account."""


class IdentityToolkitProvider(IdentityProvider):
    """Google Identity Toolkit REST client."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or settings.IDENTITY_TOOLKIT_API_KEY
        self.base_url = (base_url or settings.IDENTITY_TOOLKIT_BASE_URL).rstrip("/")
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _call(self, method: str, body: dict[str, Any]) -> dict[str, Any]:
        if not self.is_configured:
            raise BackendUnavailable("Identity provider is not configured")

        url = f"{self.base_url}/accounts:{method}"
        try:
            async with httpx.AsyncClient(
                timeout=settings.IDENTITY_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.post(url, params={"key": self.api_key}, json=body)
        except httpx.HTTPError as e:
            logger.error("identity_provider_unreachable", method=method, error=str(e))
            raise BackendUnavailable() from e

        if response.status_code == 200:
            return response.json()

        if 400 <= response.status_code < 500:
            code = self._error_code(response)
            logger.info("identity_provider_rejected", method=method, code=code)
            if code == "EMAIL_EXISTS":
                raise AccountExists()
            if code in CREDENTIAL_ERRORS:
                raise NotAuthenticated("Invalid credentials")
            raise NotAuthenticated(f"Sign-in rejected: {code}")

        logger.error("identity_provider_error", method=method, status=response.status_code)
        raise BackendUnavailable()

    @staticmethod
    def _error_code(response: httpx.Response) -> str:
        try:
            message = response.json().get("error", {}).get("message", "")
        except ValueError:
            return "UNKNOWN"
        # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
        return message.split(" ", 1)[0] or "UNKNOWN"

    @staticmethod
    def _profile(data: dict[str, Any]) -> IdentityProfile:
        return IdentityProfile(
            uid=data["localId"],
            email=data.get("email", ""),
            display_name=data.get("displayName", "") or "",
            photo_url=data.get("photoUrl"),
        )

    async def verify_federated(self, id_token: str) -> IdentityProfile:
        data = await self._call(
            "signInWithIdp",
            {
                "postBody": urlencode({"id_token": id_token, "providerId": "google.com"}),
                "requestUri": settings.IDENTITY_REQUEST_URI,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        return self._profile(data)

    async def sign_in_password(self, email: str, password: str) -> IdentityProfile:
        data = await self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._profile(data)

    async def sign_up_password(self, email: str, password: str, display_name: str) -> IdentityProfile:
        data = await self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        await self._call(
            "update",
            {"idToken": data["idToken"], "displayName": display_name, "returnSecureToken": False},
        )
        profile = self._profile(data)
        profile.display_name = display_name
        return profile


_provider: IdentityProvider | None = None


def get_identity_provider() -> IdentityProvider:
    """Get the process-wide identity provider client."""
    global _provider
    if _provider is None:
        _provider = IdentityToolkitProvider()
    return _provider
