from typing import List

from fastapi import APIRouter, Depends

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_document_store
from libs.db.store import DocumentStore
from services.communications_service.models import Notification
from services.communications_service.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[Notification])
async def list_my_notifications(
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """List the caller's notifications, newest first."""
    return await notification_service.list_notifications(store, current_user.user_id)


@router.get("/unread-count")
async def get_unread_count(
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    count = await notification_service.unread_count(store, current_user.user_id)
    return {"unread": count}


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    return await notification_service.mark_read(
        store, notification_id, current_user.user_id
    )
