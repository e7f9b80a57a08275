"""
Navigation endpoint.

Lets the web client ask where a navigation should land for the current
caller instead of duplicating the route rules.
"""

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.deps import OptionalPrincipal
from services.access_gate import AuthState, evaluate

router = APIRouter()


class NavigationResponse(BaseModel):
    """Gate decision for one path."""

    path: str
    action: str
    location: Optional[str] = None


@router.get("", response_model=NavigationResponse)
async def check_navigation(
    principal: OptionalPrincipal,
    path: str = Query(..., min_length=1),
) -> NavigationResponse:
    state = AuthState.AUTHENTICATED if principal else AuthState.UNAUTHENTICATED
    decision = evaluate(path, state, principal.role if principal else None)
    return NavigationResponse(path=path, action=decision.action.value, location=decision.location)
