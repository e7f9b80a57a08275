"""
Route-level access control.

Each navigation is evaluated on its own against the caller's current auth
state; there is no persistent state machine. The route table mirrors the web
client's router.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.cosmos_documents import UserRole

LOGIN_PATH = "/login"
STUDENT_HOME = "/dashboard"
STAFF_HOME = "/admin"


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class GateAction(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"
    LOADING = "loading"


@dataclass(frozen=True)
class RouteRule:
    """Access rule for one route pattern."""

    pattern: str
    requires_auth: bool = False
    allowed_roles: Optional[frozenset[str]] = None
    public_only: bool = False
    redirect_to: Optional[str] = None

    def matches(self, path: str) -> bool:
        regex = "^" + re.sub(r":[A-Za-z_]+", r"[^/]+", self.pattern) + "/?$"
        return re.match(regex, path) is not None


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    location: Optional[str] = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(GateAction.ALLOW)

    @classmethod
    def redirect(cls, location: str) -> "GateDecision":
        return cls(GateAction.REDIRECT, location)

    @classmethod
    def loading(cls) -> "GateDecision":
        return cls(GateAction.LOADING)


STUDENT_ONLY = frozenset({UserRole.STUDENT.value})
STAFF_ONLY = frozenset({UserRole.ADMIN.value, UserRole.MANAGEMENT.value})

ROUTES: tuple[RouteRule, ...] = (
    RouteRule("/login", public_only=True),
    RouteRule("/signup", public_only=True),
    RouteRule("/", redirect_to=LOGIN_PATH),
    RouteRule("/dashboard", requires_auth=True, allowed_roles=STUDENT_ONLY),
    RouteRule("/dashboard/issues/new", requires_auth=True, allowed_roles=STUDENT_ONLY),
    RouteRule("/dashboard/issues/:issueId/edit", requires_auth=True, allowed_roles=STUDENT_ONLY),
    RouteRule("/dashboard/settings", requires_auth=True, allowed_roles=STUDENT_ONLY),
    RouteRule("/admin", requires_auth=True, allowed_roles=STAFF_ONLY),
)


def role_home(role: str) -> str:
    """Landing route for a role."""
    if role == UserRole.STUDENT:
        return STUDENT_HOME
    return STAFF_HOME


def find_route(path: str) -> Optional[RouteRule]:
    """Rule for a path, or None for the catch-all not-found route."""
    for rule in ROUTES:
        if rule.matches(path):
            return rule
    return None


def check_roles(allowed_roles: Optional[frozenset[str]], state: AuthState, role: Optional[str]) -> GateDecision:
    """Decide a protected route for the given state."""
    if state == AuthState.AUTHENTICATING:
        return GateDecision.loading()
    if state == AuthState.UNAUTHENTICATED or role is None:
        return GateDecision.redirect(LOGIN_PATH)
    if allowed_roles is not None and role not in allowed_roles:
        return GateDecision.redirect(role_home(role))
    return GateDecision.allow()


def evaluate(path: str, state: AuthState, role: Optional[str] = None) -> GateDecision:
    """
    Decide what happens when a caller navigates to path.

    - authenticating: no decision yet, render a loading placeholder
    - unauthenticated on a protected route: go to /login
    - authenticated with a role the route does not allow: go to the role's home
    - authenticated on /login or /signup: go to the role's home
    """
    rule = find_route(path)
    if rule is None:
        return GateDecision.allow()

    if rule.redirect_to:
        return GateDecision.redirect(rule.redirect_to)

    if rule.public_only:
        if state == AuthState.AUTHENTICATING:
            return GateDecision.loading()
        if state == AuthState.AUTHENTICATED and role is not None:
            return GateDecision.redirect(role_home(role))
        return GateDecision.allow()

    if rule.requires_auth:
        return check_roles(rule.allowed_roles, state, role)

    return GateDecision.allow()
