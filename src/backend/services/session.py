"""
Per-principal session.

A session is constructed explicitly for one principal, picks its storage
backend once when it opens, and hands the same repository and gate to every
consumer. `teardown` releases every feed subscription the session created;
it runs on close and on sign-out.

The registry tracks open sessions by uid and keeps the revoked-token list
used by logout.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Optional

import structlog

from repositories.issue_repository import IssueRepository
from repositories.provider import backend_for, release_local_backend
from repositories.storage_backend import StorageBackend
from schemas.user import Principal
from services.access_gate import AuthState, GateDecision, evaluate
from services.issue_feed import SnapshotCallback, Subscription

logger = structlog.get_logger(__name__)


class Session:
    """Backend, repository and gate bound to one principal."""

    def __init__(
        self,
        principal: Optional[Principal],
        backend: StorageBackend | None = None,
        token_id: str | None = None,
    ):
        self.principal = principal
        self.token_id = token_id
        self._backend = backend
        self._repository: IssueRepository | None = None
        self._subscriptions: list[Subscription] = []
        self.active = False
        self.closed = asyncio.Event()

    @property
    def auth_state(self) -> AuthState:
        if self.principal is None:
            return AuthState.UNAUTHENTICATED
        return AuthState.AUTHENTICATED

    @property
    def backend(self) -> StorageBackend:
        if self._backend is None:
            raise RuntimeError("Session has no storage backend; call init() first")
        return self._backend

    @property
    def repository(self) -> IssueRepository:
        if self._repository is None:
            raise RuntimeError("Session is not initialized; call init() first")
        return self._repository

    def init(self) -> "Session":
        """Select the backend and build the repository."""
        if self.active:
            return self
        if self.principal is not None:
            if self._backend is None:
                self._backend = backend_for(self.principal)
            self._repository = IssueRepository(self._backend)
        self.active = True
        get_session_registry().add(self)
        logger.debug(
            "session_opened",
            uid=self.principal.uid if self.principal else None,
            backend=self._backend.name if self._backend else None,
        )
        return self

    def track(self, subscription: Subscription) -> Subscription:
        """Release subscription when the session tears down."""
        self._subscriptions.append(subscription)
        return subscription

    async def subscribe(self, on_snapshot: SnapshotCallback) -> Subscription:
        return self.track(await self.repository.subscribe(on_snapshot))

    def evaluate_navigation(self, path: str) -> GateDecision:
        role = self.principal.role if self.principal else None
        return evaluate(path, self.auth_state, role)

    def teardown(self) -> None:
        """Release every subscription. Safe to call more than once."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        released = len(self._subscriptions)
        self._subscriptions.clear()
        self.closed.set()
        if self.active:
            self.active = False
            get_session_registry().discard(self)
            logger.debug(
                "session_closed",
                uid=self.principal.uid if self.principal else None,
                released=released,
            )

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        principal: Optional[Principal],
        backend: StorageBackend | None = None,
        token_id: str | None = None,
    ) -> AsyncIterator["Session"]:
        session = cls(principal, backend=backend, token_id=token_id).init()
        try:
            yield session
        finally:
            session.teardown()


class SessionRegistry:
    """Open sessions by uid, plus revoked session tokens."""

    def __init__(self) -> None:
        self._sessions: dict[str, list[Session]] = {}
        self._revoked: dict[str, datetime] = {}

    def add(self, session: Session) -> None:
        if session.principal is None:
            return
        self._sessions.setdefault(session.principal.uid, []).append(session)

    def discard(self, session: Session) -> None:
        if session.principal is None:
            return
        sessions = self._sessions.get(session.principal.uid, [])
        if session in sessions:
            sessions.remove(session)
        if not sessions:
            self._sessions.pop(session.principal.uid, None)
            if session.principal.is_demo:
                release_local_backend(session.principal.uid)

    def sessions_for(self, uid: str) -> list[Session]:
        return list(self._sessions.get(uid, []))

    def teardown_user(self, uid: str) -> int:
        """Tear down every open session of uid; returns how many were closed."""
        sessions = self.sessions_for(uid)
        for session in sessions:
            session.teardown()
        return len(sessions)

    def on_principal_change(self, uid: str, principal: Optional[Principal]) -> None:
        """AuthService listener: sign-out closes the user's sessions and drops demo data."""
        if principal is None:
            closed = self.teardown_user(uid)
            if closed:
                logger.info("sessions_torn_down", uid=uid, count=closed)
            release_local_backend(uid, drop_data=True)

    def revoke(self, token_id: str, expires_at: datetime | None = None) -> None:
        """Reject token_id until it would have expired anyway."""
        self._prune()
        self._revoked[token_id] = expires_at or datetime.now(timezone.utc) + timedelta(days=1)
        logger.info("token_revoked", jti=token_id[:8])

    def is_revoked(self, token_id: str | None) -> bool:
        if not token_id:
            return False
        expires_at = self._revoked.get(token_id)
        if expires_at is None:
            return False
        if datetime.now(timezone.utc) >= expires_at:
            del self._revoked[token_id]
            return False
        return True

    def _prune(self) -> None:
        now = datetime.now(timezone.utc)
        for token_id in [jti for jti, expires_at in self._revoked.items() if expires_at <= now]:
            del self._revoked[token_id]

    def clear(self) -> None:
        for uid in list(self._sessions):
            self.teardown_user(uid)
        self._revoked.clear()


_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
