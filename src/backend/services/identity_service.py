"""
Identity and role resolution.

Maps an account verified by the identity provider to an application
principal `{uid, display_name, email, role, official_id}`. An account the
provider knows but that has no user record yet needs a role choice before
it can use the application.

Demo principals never touch the provider or the user store; their profile
lives in the session token.
"""

from typing import Callable, Optional

import structlog

from core.config import settings
from core.exceptions import Forbidden, NotAuthenticated, RoleAssignmentRequired
from core.security import generate_demo_uid
from models.cosmos_documents import UserDocument, utcnow
from repositories.cosmos_user_repository import CosmosUserRepository
from repositories.provider import get_user_repository
from schemas.user import IdentityProfile, Principal, RoleAssignment, SessionMode
from services.identity_provider import IdentityProvider, get_identity_provider

logger = structlog.get_logger(__name__)

DEMO_EMAIL = "dummy@example.com"
DEMO_DISPLAY_NAME = "Demo User"

# Called with (uid, principal); principal is None after sign-out
PrincipalListener = Callable[[str, Optional[Principal]], None]


class IdentityResolver:
    """Looks up and records application users for provider accounts."""

    def __init__(self, users: CosmosUserRepository | None = None):
        self._users = users

    @property
    def users(self) -> CosmosUserRepository:
        if self._users is None:
            self._users = get_user_repository()
        return self._users

    async def resolve(self, profile: IdentityProfile) -> Optional[Principal]:
        """Principal for a known user, or None when a role must be assigned first."""
        user = await self.users.get_by_id(profile.uid)
        if user is None:
            return None
        return Principal.from_user(user)

    async def register(self, profile: IdentityProfile, assignment: RoleAssignment) -> Principal:
        """Create the user record for a provider account."""
        user = UserDocument(
            id=profile.uid,
            email=profile.email,
            display_name=profile.display_name,
            photo_url=profile.photo_url,
            role=assignment.role,
            official_id=assignment.official_id,
        )
        user = await self.users.save(user)
        logger.info("user_registered", uid=user.id, role=user.role)
        return Principal.from_user(user)

    async def principal_for_uid(self, uid: str) -> Principal:
        """Principal for a session token subject; the record must still exist."""
        user = await self.users.get_by_id(uid)
        if user is None:
            raise NotAuthenticated("User no longer exists")
        return Principal.from_user(user)

    async def assign_role(self, principal: Principal, assignment: RoleAssignment) -> Principal:
        """Explicit role re-assignment, the only way a role changes."""
        if principal.is_demo:
            return principal.model_copy(
                update={
                    "role": assignment.role,
                    "official_id": assignment.official_id if assignment.role != "student" else None,
                }
            )

        user = await self.users.get_by_id(principal.uid)
        if user is None:
            raise NotAuthenticated("User no longer exists")

        # Revalidate so the official id rule is applied to the new role
        user = UserDocument.model_validate(
            {
                **user.model_dump(),
                "role": assignment.role,
                "official_id": assignment.official_id,
                "updated_at": utcnow(),
            }
        )
        user = await self.users.save(user)
        logger.info("user_role_assigned", uid=user.id, role=user.role)
        return Principal.from_user(user)

    def create_demo_principal(self, assignment: RoleAssignment) -> Principal:
        """A fresh principal backed by the local cache."""
        if not settings.DEMO_MODE_ENABLED:
            raise Forbidden("Demo mode is disabled")
        return Principal(
            uid=generate_demo_uid(),
            email=DEMO_EMAIL,
            display_name=DEMO_DISPLAY_NAME,
            role=assignment.role,
            official_id=assignment.official_id if assignment.role != "student" else None,
            mode=SessionMode.DEMO,
        )


class AuthService:
    """
    Sign-in flows producing principals.

    Listeners registered with `on_principal_change` hear about every sign-in
    and sign-out, and return an unregister callable.
    """

    def __init__(
        self,
        provider: IdentityProvider | None = None,
        resolver: IdentityResolver | None = None,
    ):
        self._provider = provider
        self.resolver = resolver or IdentityResolver()
        self._listeners: list[PrincipalListener] = []

    @property
    def provider(self) -> IdentityProvider:
        if self._provider is None:
            self._provider = get_identity_provider()
        return self._provider

    async def sign_in_federated(
        self, id_token: str, assignment: RoleAssignment | None = None
    ) -> Principal:
        """
        Federated sign-in.

        A returning user keeps the stored role; the role choice only applies
        to the first sign-in of an account.
        """
        profile = await self.provider.verify_federated(id_token)
        principal = await self.resolver.resolve(profile)
        if principal is None:
            if assignment is None:
                raise RoleAssignmentRequired()
            principal = await self.resolver.register(profile, assignment)
        self._notify(principal.uid, principal)
        return principal

    async def sign_in_password(self, email: str, password: str) -> Principal:
        profile = await self.provider.sign_in_password(email, password)
        principal = await self.resolver.resolve(profile)
        if principal is None:
            logger.info("sign_in_without_role", uid=profile.uid)
            raise RoleAssignmentRequired()
        self._notify(principal.uid, principal)
        return principal

    async def sign_up_password(
        self,
        email: str,
        password: str,
        display_name: str,
        assignment: RoleAssignment,
    ) -> Principal:
        profile = await self.provider.sign_up_password(email, password, display_name)
        principal = await self.resolver.register(profile, assignment)
        self._notify(principal.uid, principal)
        return principal

    def sign_in_demo(self, assignment: RoleAssignment) -> Principal:
        principal = self.resolver.create_demo_principal(assignment)
        logger.info("demo_session_started", uid=principal.uid, role=principal.role)
        self._notify(principal.uid, principal)
        return principal

    def sign_out(self, principal: Principal) -> None:
        logger.info("signed_out", uid=principal.uid, mode=principal.mode)
        self._notify(principal.uid, None)

    def on_principal_change(self, listener: PrincipalListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    def _notify(self, uid: str, principal: Optional[Principal]) -> None:
        for listener in list(self._listeners):
            try:
                listener(uid, principal)
            except Exception as e:
                logger.error("principal_listener_failed", uid=uid, error=str(e))


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
