"""Events Service router: the match calendar."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.errors import PermissionDeniedError
from libs.db.session import get_document_store
from libs.db.store import DocumentStore
from services.events_service.models import MatchEvent
from services.events_service.schemas import MatchCreate, MatchResult
from services.events_service.services import matches as match_service

router = APIRouter(prefix="/events/matches", tags=["events"])


@router.post("", response_model=MatchEvent, status_code=status.HTTP_201_CREATED)
async def create_match(
    payload: MatchCreate,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Schedule a fixture on the caller's calendar (admins may pick the athlete)."""
    owner_id = payload.user_id or current_user.user_id
    if owner_id != current_user.user_id and not current_user.is_admin:
        raise PermissionDeniedError("Only admins can schedule for another athlete")
    fields = payload.model_dump(by_alias=True, exclude={"user_id"})
    return await match_service.create_match(store, owner_id, fields)


@router.get("", response_model=List[MatchEvent])
async def list_matches(
    user_id: Optional[str] = None,
    upcoming: bool = False,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """
    List fixtures, earliest first.

    Without ``user_id`` every athlete's fixtures are returned (the academy
    calendar).
    """
    return await match_service.list_matches(store, user_id, upcoming_only=upcoming)


@router.post("/{match_id}/result", response_model=MatchEvent)
async def log_match_result(
    match_id: str,
    payload: MatchResult,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    return await match_service.log_result(
        store, match_id, payload.result, payload.user_stats, current_user
    )


@router.delete("/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_match(
    match_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    await match_service.delete_match(store, match_id, current_user)
