from typing import Optional

from pydantic import Field

from libs.db.documents import DocumentModel
from services.communications_service.models.enums import NotificationType

NOTIFICATIONS_COLLECTION = "notifications"


class Notification(DocumentModel):
    id: str
    user_id: str
    # Display name of the sender ("Coach", "Verum Academy", an athlete's name).
    sender: str = Field(alias="from")
    message: str
    type: NotificationType = NotificationType.SYSTEM
    read: bool = False
    link_to_media_id: Optional[str] = None
    created_at: Optional[str] = None
