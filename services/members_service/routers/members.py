"""Profiles, the athlete directory, follows and awards."""

from typing import List, Optional

from fastapi import APIRouter, Depends, status

from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_document_store
from libs.db.store import DocumentStore
from services.members_service.models import Award, UserProfile
from services.members_service.schemas import AwardCreate, FollowResponse, ProfileUpdate
from services.members_service.services import awards as award_service
from services.members_service.services import members as member_service
from services.members_service.services import network

logger = get_logger(__name__)
router = APIRouter(prefix="/members", tags=["members"])


@router.get("/me", response_model=UserProfile)
async def get_current_member_profile(
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Get the profile of the currently authenticated athlete."""
    return await member_service.load_profile(store, current_user.user_id)


@router.patch("/me", response_model=UserProfile)
async def update_current_member(
    payload: ProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Partial self-edit. Stats and role are not editable here."""
    return await member_service.update_profile(
        store, current_user.user_id, payload.changes()
    )


@router.get("", response_model=List[UserProfile])
async def list_athletes(
    search: Optional[str] = None,
    include_me: bool = False,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Athlete directory, searchable by name, position or club."""
    return await network.search_athletes(
        store,
        search=search,
        exclude_id=None if include_me else current_user.user_id,
    )


@router.get("/{user_id}", response_model=UserProfile)
async def get_member(
    user_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    return await member_service.load_profile(store, user_id)


@router.post("/{user_id}/follow", response_model=FollowResponse)
async def toggle_follow(
    user_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Follow the athlete, or unfollow if already following."""
    following = await network.toggle_follow(store, current_user.user_id, user_id)
    return {"userId": user_id, "following": following}


@router.get("/{user_id}/awards", response_model=List[Award])
async def list_awards(
    user_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    return await award_service.list_awards(store, user_id)


@router.post(
    "/{user_id}/awards", response_model=Award, status_code=status.HTTP_201_CREATED
)
async def add_award(
    user_id: str,
    payload: AwardCreate,
    admin: AuthUser = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    """Admins record awards for athletes."""
    return await award_service.add_award(
        store, user_id, payload.title, payload.date, payload.issuer, payload.icon
    )


@router.delete("/{user_id}/awards/{award_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_award(
    user_id: str,
    award_id: str,
    admin: AuthUser = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    await award_service.delete_award(store, user_id, award_id)
