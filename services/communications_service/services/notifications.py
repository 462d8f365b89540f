"""
In-app notifications.

Other services call ``notify`` after their own write has succeeded. A
notification is a courtesy: ``notify_safely`` logs a failed write and moves
on so the caller's operation still counts as done.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from libs.common.datetime_utils import utc_now_iso
from libs.common.errors import AppError, NotFoundError, PermissionDeniedError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec, sort_documents
from libs.db.store import DocumentStore
from services.communications_service.models import (
    NOTIFICATIONS_COLLECTION,
    Notification,
    NotificationType,
)

logger = get_logger(__name__)


async def notify(
    store: DocumentStore,
    user_id: str,
    sender: str,
    message: str,
    type: NotificationType = NotificationType.SYSTEM,
    link_to_media_id: Optional[str] = None,
) -> str:
    return await store.create(
        NOTIFICATIONS_COLLECTION,
        {
            "userId": user_id,
            "from": sender,
            "message": message,
            "type": NotificationType(type).value,
            "read": False,
            "linkToMediaId": link_to_media_id,
            "createdAt": utc_now_iso(),
        },
    )


async def notify_safely(store: DocumentStore, user_id: str, sender: str, message: str, **kwargs) -> Optional[str]:
    try:
        return await notify(store, user_id, sender, message, **kwargs)
    except AppError as e:
        logger.warning(f"Notification for {user_id} was not stored: {e.message}")
        return None


def decode_notifications(snapshot: list[dict]) -> list[Notification]:
    notifications = []
    for doc in snapshot:
        try:
            notifications.append(Notification.from_document(doc))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed notification {doc.get('id')}")
    return notifications


async def list_notifications(store: DocumentStore, user_id: str) -> list[Notification]:
    """Newest first. Sorted here so no composite index is needed."""
    docs = await store.query(
        NOTIFICATIONS_COLLECTION, QuerySpec().where("userId", "==", user_id)
    )
    return decode_notifications(sort_documents(docs, "createdAt", descending=True))


async def unread_count(store: DocumentStore, user_id: str) -> int:
    docs = await store.query(
        NOTIFICATIONS_COLLECTION,
        QuerySpec().where("userId", "==", user_id).where("read", "==", False),
    )
    return len(docs)


async def mark_read(store: DocumentStore, notification_id: str, user_id: str) -> Notification:
    doc = await store.get(NOTIFICATIONS_COLLECTION, notification_id)
    if doc is None:
        raise NotFoundError("Notification not found")
    if doc.get("userId") != user_id:
        raise PermissionDeniedError("Notification belongs to another user")
    if not doc.get("read"):
        await store.update(NOTIFICATIONS_COLLECTION, notification_id, {"read": True})
        doc["read"] = True
    return Notification.from_document(doc)
