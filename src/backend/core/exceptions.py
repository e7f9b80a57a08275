"""
Domain exceptions raised by repositories and services.

The API layer maps each of these to an HTTP status code in main.py.
"""


class IssueBoardError(Exception):
    """Base exception for IssueBoard operations."""

    status_code = 500
    detail = "An internal error occurred"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class NotAuthenticated(IssueBoardError):
    """Operation requires a signed-in actor and none is present."""

    status_code = 401
    detail = "Authentication required"


class Forbidden(IssueBoardError):
    """The signed-in actor may not perform this operation."""

    status_code = 403
    detail = "You are not allowed to perform this action"


class NotFound(IssueBoardError):
    """Referenced document does not exist in the durable store."""

    status_code = 404
    detail = "Issue not found"


class RoleAssignmentRequired(IssueBoardError):
    """Principal is known to the identity provider but has no application role yet."""

    status_code = 409
    detail = "Role assignment required"


class AccountExists(IssueBoardError):
    """Sign-up attempted for an email the identity provider already knows."""

    status_code = 409
    detail = "An account with this email already exists"


class BackendUnavailable(IssueBoardError):
    """Identity provider or document store could not be reached."""

    status_code = 503
    detail = "Backend service unavailable. Please try again."
