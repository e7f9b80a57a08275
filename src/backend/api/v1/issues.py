"""
Issue endpoints.

Every request opens a session for the caller, so demo principals read and
write their local cache slot while everyone else shares the Cosmos store.
"""

import asyncio
from typing import Annotated

import structlog
from fastapi import APIRouter, Query, Response, WebSocket, WebSocketDisconnect, status

from api.deps import CurrentPrincipal, Repository, StudentPrincipal, principal_from_token, validate_token
from core.exceptions import IssueBoardError, NotFound
from models.cosmos_documents import IssueCategory, IssueDocument, IssueStatus
from repositories.issue_repository import IssueRepository
from schemas.issue import (
    ALL,
    IssueCreate,
    IssueResponse,
    IssueSort,
    IssueStats,
    IssueUpdate,
    VoteResponse,
)
from services.issue_projection import aggregate_stats, apply_view, issues_authored_by, issues_voted_by
from services.session import Session

logger = structlog.get_logger(__name__)

router = APIRouter()

CATEGORY_FILTER = "^(" + "|".join([ALL] + [c.value for c in IssueCategory]) + ")$"
STATUS_FILTER = "^(" + "|".join([ALL] + [s.value for s in IssueStatus]) + ")$"


def _respond(issues: list[IssueDocument], viewer_uid: str) -> list[IssueResponse]:
    return [IssueResponse.from_document(issue, viewer_uid) for issue in issues]


async def _require_issue(repository: IssueRepository, issue_id: str) -> IssueDocument:
    issue = await repository.get_issue(issue_id)
    if issue is None:
        raise NotFound()
    return issue


# =============================================================================
# Queries
# =============================================================================


@router.get("", response_model=list[IssueResponse])
async def list_issues(
    principal: CurrentPrincipal,
    repository: Repository,
    category: Annotated[str, Query(pattern=CATEGORY_FILTER)] = ALL,
    issue_status: Annotated[str, Query(alias="status", pattern=STATUS_FILTER)] = ALL,
    sort: IssueSort = IssueSort.RECENT,
) -> list[IssueResponse]:
    """
    List issues.

    Filters apply before sorting; `sort=votes` keeps newest-first order among
    issues with equal vote counts.
    """
    issues = await repository.list_issues()
    return _respond(apply_view(issues, category, issue_status, sort), principal.uid)


@router.get("/stats", response_model=IssueStats)
async def get_issue_stats(principal: CurrentPrincipal, repository: Repository) -> IssueStats:
    """Totals by status and overall vote count."""
    return aggregate_stats(await repository.list_issues())


@router.get("/mine", response_model=list[IssueResponse])
async def list_my_issues(principal: CurrentPrincipal, repository: Repository) -> list[IssueResponse]:
    """Issues the caller authored, newest first."""
    issues = await repository.list_issues_by_author(principal.uid)
    return _respond(issues_authored_by(issues, principal.uid), principal.uid)


@router.get("/voted", response_model=list[IssueResponse])
async def list_voted_issues(principal: CurrentPrincipal, repository: Repository) -> list[IssueResponse]:
    """Issues the caller currently endorses."""
    issues = await repository.list_issues()
    return _respond(issues_voted_by(issues, principal.uid), principal.uid)


# =============================================================================
# Live feed
# =============================================================================


def offer_latest(queue: asyncio.Queue, snapshot: list[IssueDocument]) -> None:
    """Queue snapshot, replacing one the client has not received yet."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(snapshot)


@router.websocket("/live")
async def live_issues(websocket: WebSocket, token: str = Query(...)) -> None:
    """
    Stream full issue snapshots.

    The first message is the current list; each later message replaces it.
    The socket closes when the client disconnects or the user signs out.
    """
    try:
        payload = validate_token(token)
        principal = await principal_from_token(token)
    except IssueBoardError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.detail)
        return

    await websocket.accept()
    snapshots: asyncio.Queue[list[IssueDocument]] = asyncio.Queue(maxsize=1)

    async def forward() -> None:
        while True:
            snapshot = await snapshots.get()
            await websocket.send_json(
                [issue.model_dump(mode="json") for issue in _respond(snapshot, principal.uid)]
            )

    async def drain() -> None:
        while True:
            await websocket.receive_text()

    async with Session.open(principal, token_id=payload.get("jti")) as session:
        await session.subscribe(lambda snapshot: offer_latest(snapshots, snapshot))
        tasks = [
            asyncio.create_task(forward()),
            asyncio.create_task(drain()),
            asyncio.create_task(session.closed.wait()),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()

        for task in done:
            error = None if task.cancelled() else task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.warning("live_feed_failed", uid=principal.uid, error=str(error))

        if session.closed.is_set():
            await websocket.close(code=status.WS_1000_NORMAL_CLOSURE, reason="Signed out")

    logger.debug("live_feed_closed", uid=principal.uid)


# =============================================================================
# Single issues
# =============================================================================


@router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(issue_id: str, principal: CurrentPrincipal, repository: Repository) -> IssueResponse:
    """Get one issue."""
    return IssueResponse.from_document(await _require_issue(repository, issue_id), principal.uid)


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(
    issue_data: IssueCreate,
    principal: StudentPrincipal,
    repository: Repository,
) -> IssueResponse:
    """Submit a new issue. Students only."""
    issue = await repository.create_issue(issue_data, principal)
    logger.info("issue_created", issue_id=issue.id, uid=principal.uid, category=issue.category_id)
    return IssueResponse.from_document(issue, principal.uid)


@router.patch("/{issue_id}", response_model=IssueResponse)
async def update_issue(
    issue_id: str,
    update: IssueUpdate,
    principal: CurrentPrincipal,
    repository: Repository,
) -> IssueResponse:
    """Edit title, description, category or image of the caller's own issue."""
    fields = update.to_fields()
    if fields:
        await repository.update_issue(issue_id, fields, actor=principal)
    return IssueResponse.from_document(await _require_issue(repository, issue_id), principal.uid)


@router.delete("/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_issue(issue_id: str, principal: CurrentPrincipal, repository: Repository) -> Response:
    """Delete the caller's own issue. Unknown ids succeed silently."""
    await repository.delete_issue(issue_id, actor=principal)
    logger.info("issue_deleted", issue_id=issue_id, uid=principal.uid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{issue_id}/vote", response_model=VoteResponse)
async def toggle_vote(issue_id: str, principal: CurrentPrincipal, repository: Repository) -> VoteResponse:
    """Vote for an issue, or withdraw an existing vote."""
    voted = await repository.toggle_vote(issue_id, principal)
    if voted is None:
        raise NotFound()
    issue = await _require_issue(repository, issue_id)
    return VoteResponse(issue_id=issue.id, has_voted=voted, vote_count=issue.vote_count)
