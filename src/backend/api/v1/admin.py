"""
Admin endpoints for issue triage.

Restricted to admin and management roles.
"""

import structlog
from fastapi import APIRouter

from api.deps import Repository, StaffPrincipal
from core.exceptions import NotFound
from schemas.issue import AdminNoteCreate, IssueResponse, StatusUpdate

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.put("/issues/{issue_id}/status", response_model=IssueResponse)
async def update_issue_status(
    issue_id: str,
    update: StatusUpdate,
    principal: StaffPrincipal,
    repository: Repository,
) -> IssueResponse:
    """Mark an issue pending or solved."""
    await repository.update_status(issue_id, update.status, actor=principal)
    issue = await repository.get_issue(issue_id)
    if issue is None:
        raise NotFound()

    logger.info("issue_status_updated", issue_id=issue_id, status=issue.status, admin_id=principal.uid)
    return IssueResponse.from_document(issue, principal.uid)


@router.put("/issues/{issue_id}/note", response_model=IssueResponse)
async def set_admin_note(
    issue_id: str,
    note: AdminNoteCreate,
    principal: StaffPrincipal,
    repository: Repository,
) -> IssueResponse:
    """Attach the official note, signed with the caller's display name."""
    await repository.add_admin_note(issue_id, note.note, principal)
    issue = await repository.get_issue(issue_id)
    if issue is None:
        raise NotFound()

    logger.info("issue_note_added", issue_id=issue_id, admin_id=principal.uid)
    return IssueResponse.from_document(issue, principal.uid)
